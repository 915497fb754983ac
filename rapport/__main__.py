"""Entry point for Rapport.

Usage:
    python -m rapport analyze FILE    # Analyze one export, print JSON
    python -m rapport process         # Process new exports in import_dirs and exit
    python -m rapport watch           # Watch import_dirs and process as files arrive
"""

import argparse
import json
import logging
import logging.handlers
import sys
from pathlib import Path

from .config import Config


def _setup_logging():
    """Configure logging to both stderr and file with rotation."""
    log_dir = Path.home() / ".rapport"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "rapport.log"

    logger = logging.getLogger("rapport")
    logger.setLevel(logging.INFO)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10*1024*1024, backupCount=3
    )
    file_handler.setLevel(logging.INFO)
    file_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    file_handler.setFormatter(file_formatter)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_formatter = logging.Formatter("%(levelname)s: %(message)s")
    console_handler.setFormatter(console_formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rapport", description="Chat-export parsing and relationship analytics"
    )
    parser.add_argument("--config", type=str, default=None,
                        help="Path to config file")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze one export and print the result")
    analyze.add_argument("file", type=Path, help=".txt, .csv or .zip export")
    analyze.add_argument("--source", choices=["whatsapp", "imessage"], default=None,
                         help="Export format, skips detection")
    analyze.add_argument("--contact", default=None,
                         help="Contact name or phone number")
    analyze.add_argument("--no-insights", action="store_true",
                         help="Don't call the LLM for insights")
    analyze.add_argument("--output", type=Path, default=None,
                         help="Write JSON here instead of stdout")

    sub.add_parser("process", help="Process new exports in import_dirs and exit")
    sub.add_parser("watch", help="Watch import_dirs and process new exports")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    _setup_logging()
    logger = logging.getLogger("rapport")

    config = Config(Path(args.config)) if args.config else Config()
    logger.info(f"Starting Rapport with config from {config.config_path}")

    if args.command == "analyze":
        return _analyze(config, args)
    if args.command == "process":
        _process(config)
        return 0
    if args.command == "watch":
        _run_watcher(config)
        return 0
    return 2


def _analyze(config: Config, args) -> int:
    """Analyze a single file; exit code 1 when nothing was parsed."""
    from .processor import ImportProcessor
    processor = ImportProcessor(config)
    result = processor.import_file(
        args.file,
        source=args.source,
        contact=args.contact,
        with_insights=False if args.no_insights else None,
    )

    if args.output:
        processor.write_result(result, args.output)
        print(f"Wrote {args.output}", file=sys.stderr)
    else:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))

    if not result.success:
        print(f"Nothing parsed: {result.reason}", file=sys.stderr)
        return 1
    return 0


def _process(config: Config):
    """Process new exports once and exit."""
    from .processor import ImportProcessor
    processor = ImportProcessor(config)
    processor.process_all()


def _run_watcher(config: Config):
    """Run the watcher in the foreground."""
    from .watcher import ExportWatcher
    print("Rapport watcher starting...", file=sys.stderr)
    watcher = ExportWatcher(config)
    watcher.start()


if __name__ == "__main__":
    sys.exit(main())
