"""Import pipeline for Rapport.

Reads a chat export (.txt, .csv or a .zip holding one), detects its
format, runs every parser of that family and keeps the best result, then
derives sessions, signals, the analytics record and memory records.
Optionally asks the LLM for relationship insights on top.

Results are handed back as `ImportResult`; `process_all()` also writes
them as JSON to the output directory.
"""

import hashlib
import json
import logging
import re
import time
import zipfile
from pathlib import Path

from .analytics import build_analytics
from .config import Config
from .detect import UNKNOWN, detect_format
from .insights import SOURCE_DISABLED, merge_insights, request_insights
from .memories import synthesize_memories
from .models import ImportResult, RawExport
from .parsers import run_ensemble, select_best
from .sessions import segment_sessions
from .signals import extract_signals

logger = logging.getLogger(__name__)

EXPORT_SUFFIXES = (".txt", ".csv", ".zip")

_CHAT_WITH_RE = re.compile(r"WhatsApp Chat (?:with|-)\s*(.+?)(?:\.(?:txt|zip))?$", re.IGNORECASE)


class ExportReadError(Exception):
    """The file holds no readable chat export."""


# ── Reading exports ──────────────────────────────────────────

def contact_from_filename(name: str) -> str | None:
    """'WhatsApp Chat with Alice.txt' -> 'Alice'."""
    m = _CHAT_WITH_RE.search(Path(name).name)
    if not m:
        return None
    return m.group(1).strip() or None


def _pick_chat_member(names: list[str]) -> str | None:
    files = [n for n in names if not n.endswith("/") and not Path(n).name.startswith(".")]
    for pick in (
        lambda n: Path(n).name == "_chat.txt",
        lambda n: "WhatsApp Chat with" in Path(n).name,
        lambda n: n.lower().endswith(".txt"),
        lambda n: n.lower().endswith(".csv"),
    ):
        for name in files:
            if pick(name):
                return name
    return None


def read_export(path: Path, source: str | None = None,
                contact: str | None = None) -> RawExport:
    """Load a chat export from disk. Raises ExportReadError."""
    path = Path(path)
    if not path.is_file():
        raise ExportReadError(f"File not found: {path}")

    if path.suffix.lower() == ".zip":
        try:
            with zipfile.ZipFile(path) as archive:
                member = _pick_chat_member(archive.namelist())
                if member is None:
                    raise ExportReadError(f"No chat file found in {path.name}")
                data = archive.read(member)
        except zipfile.BadZipFile as e:
            raise ExportReadError(f"Not a valid zip archive: {path.name} ({e})")
        contact = contact or contact_from_filename(member) or contact_from_filename(path.name)
    else:
        data = path.read_bytes()
        contact = contact or contact_from_filename(path.name)

    return RawExport.from_bytes(data, source=source, contact=contact, name=path.name)


def _file_hash(path: Path) -> str:
    return hashlib.md5(path.read_bytes()).hexdigest()[:12]


# ── Pipeline ─────────────────────────────────────────────────

class ImportProcessor:
    def __init__(self, config: Config):
        self.config = config
        self.output_dir = Path(config["output_dir"])
        self.session_gap = config.hours("session_gap_hours")
        self.initiation_gap = config.hours("initiation_gap_hours")
        self.response_window = config.hours("response_window_hours")
        self.memory_cap = int(config.get("memory_cap", 5))
        self.memory_keywords = bool(config.get("memory_keywords", False))
        self.timestamp_policy = config.get("unparseable_timestamps", "keep")
        self.stale_seconds = config.get("stale_seconds", 30)

    def parse(self, raw: RawExport) -> ImportResult:
        """Detect, parse and order the messages of one export."""
        family = detect_format(raw.content, raw.source)
        if family == UNKNOWN:
            return ImportResult(
                success=False,
                reason="No parseable content: unrecognised export format",
                source_name=raw.name,
            )

        contact = raw.contact or self.config.get("default_contact") or None
        candidates = run_ensemble(raw.content, family, contact)
        best = select_best(candidates)
        counts = {c.parser_id: len(c) for c in candidates}
        logger.info(f"{raw.name or 'export'}: {family} candidates {counts}")

        if best is None or not best.messages:
            return ImportResult(
                success=False,
                reason="No parseable content: no messages found",
                format=family,
                candidate_counts=counts,
                source_name=raw.name,
            )

        messages = list(best.messages)
        fallbacks = sum(1 for m in messages if m.timestamp_estimated)
        dropped = 0
        if fallbacks:
            logger.warning(f"{fallbacks} message(s) with unparseable timestamps "
                           f"({self.timestamp_policy})")
            if self.timestamp_policy == "drop":
                messages = [m for m in messages if not m.timestamp_estimated]
                dropped = fallbacks

        # stable: messages sharing a timestamp keep their file order
        messages.sort(key=lambda m: m.timestamp)

        if not messages:
            return ImportResult(
                success=False,
                reason="No parseable content: every message had an unparseable timestamp",
                format=family,
                parser_id=best.parser_id,
                candidate_counts=counts,
                timestamp_fallbacks=fallbacks,
                dropped_messages=dropped,
                source_name=raw.name,
            )

        return ImportResult(
            success=True,
            format=family,
            parser_id=best.parser_id,
            candidate_counts=counts,
            messages=messages,
            timestamp_fallbacks=fallbacks,
            dropped_messages=dropped,
            source_name=raw.name,
        )

    def analyze(self, raw: RawExport, with_insights: bool | None = None) -> ImportResult:
        """Parse, then derive sessions, analytics and memories."""
        result = self.parse(raw)
        if not result.success:
            return result

        contact_name = raw.contact or self.config.get("default_contact") or "Contact"
        messages = result.messages

        result.sessions = segment_sessions(messages, self.session_gap)
        signals = extract_signals(
            messages,
            initiation_gap=self.initiation_gap,
            response_window=self.response_window,
        )
        analytics = build_analytics(messages, result.sessions, signals, contact=contact_name)
        result.memories = synthesize_memories(
            result.sessions, cap=self.memory_cap, extract_keywords=self.memory_keywords
        )

        if with_insights is None:
            with_insights = self.config.get("insights_enabled", True)
        if with_insights:
            insights, source = request_insights(messages, contact_name, self.config)
        else:
            insights, source = None, SOURCE_DISABLED
        result.analytics = merge_insights(analytics, insights, source)

        logger.info(
            f"{raw.name or 'export'}: {len(messages)} messages, "
            f"{len(result.sessions)} sessions, {len(result.memories)} memories, "
            f"insights={source}"
        )
        return result

    def import_file(self, path: Path, source: str | None = None,
                    contact: str | None = None,
                    with_insights: bool | None = None) -> ImportResult:
        """Read and analyze one export file."""
        path = Path(path)
        try:
            raw = read_export(path, source=source, contact=contact)
        except ExportReadError as e:
            logger.warning(str(e))
            return ImportResult(success=False, reason=str(e), source_name=path.name)
        return self.analyze(raw, with_insights=with_insights)

    def process_all(self) -> list[ImportResult]:
        """Scan import directories and analyze every export not seen yet."""
        pending = self._scan_for_new_exports()
        print(f"Processing {len(pending)} pending export(s)...")

        results = []
        for path, output in pending:
            try:
                print(f"  Processing {path.name[:40]}...")
                result = self.import_file(path)
                self.write_result(result, output)
                results.append(result)
                if result.success:
                    print(f"    {len(result.messages)} messages, "
                          f"{len(result.sessions)} sessions")
                else:
                    print(f"    Skipped: {result.reason}")
            except Exception as e:
                print(f"  Error processing {path}: {e}")
                logger.exception(f"Error processing {path}")
        return results

    def _scan_for_new_exports(self) -> list[tuple[Path, Path]]:
        """Find exports with no result file yet that are no longer being written."""
        pending = []
        for import_dir in self.config["import_dirs"]:
            base = Path(import_dir).expanduser()
            if not base.exists():
                continue
            for path in sorted(base.rglob("*")):
                if not path.is_file() or path.suffix.lower() not in EXPORT_SUFFIXES:
                    continue
                # Skip files still being copied in
                if time.time() - path.stat().st_mtime < self.stale_seconds:
                    continue
                output = self.output_dir / f"{path.stem}-{_file_hash(path)}.json"
                if not output.exists():
                    pending.append((path, output))
        return pending

    def write_result(self, result: ImportResult, path: Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
