"""File watcher for new chat exports.

Uses watchdog to monitor the import directories for new/changed exports.
Once a file hasn't been modified for stale_seconds, runs a processing pass.
"""

import logging
import threading
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .config import Config
from .processor import EXPORT_SUFFIXES, ImportProcessor

logger = logging.getLogger(__name__)


class ExportHandler(FileSystemEventHandler):
    """Tracks new/modified export files until they go quiet."""

    def __init__(self, processor: ImportProcessor, stale_seconds: float = 30):
        self.processor = processor
        self.stale_seconds = stale_seconds
        self._pending = {}  # path -> last_modified_time
        self._lock = threading.Lock()

    def on_created(self, event):
        if not event.is_directory and _is_export(event.src_path):
            self._track(event.src_path)

    def on_modified(self, event):
        if not event.is_directory and _is_export(event.src_path):
            self._track(event.src_path)

    def on_moved(self, event):
        if not event.is_directory and _is_export(event.dest_path):
            self._track(event.dest_path)

    def _track(self, path: str):
        with self._lock:
            self._pending[path] = time.time()

    def check_stale(self) -> list[str]:
        """Process exports that have been idle long enough."""
        now = time.time()
        ready = []
        with self._lock:
            for path, last_mod in list(self._pending.items()):
                if (now - last_mod) > self.stale_seconds:
                    ready.append(path)
                    del self._pending[path]

        if ready:
            logger.info(f"{len(ready)} export(s) ready: {ready}")
            # Trigger a full scan+process cycle
            self.processor.process_all()
        return ready


def _is_export(path) -> bool:
    return str(path).lower().endswith(EXPORT_SUFFIXES)


class ExportWatcher:
    """Watches the import directories and processes new exports."""

    def __init__(self, config: Config):
        self.config = config
        self.processor = ImportProcessor(config)
        self.stale_seconds = config.get("stale_seconds", 30)
        self.handler = ExportHandler(self.processor, stale_seconds=self.stale_seconds)
        self.observer = Observer()

    def start(self):
        """Start watching. Blocks until stopped."""
        for import_dir in self.config["import_dirs"]:
            path = Path(import_dir).expanduser()
            path.mkdir(parents=True, exist_ok=True)
            self.observer.schedule(self.handler, str(path), recursive=True)

        self.observer.start()

        # Also do an initial scan
        self.processor.process_all()

        # Periodic check for stale files
        interval = max(1, min(60, self.stale_seconds))
        try:
            while True:
                time.sleep(interval)
                self.handler.check_stale()
        except KeyboardInterrupt:
            self.observer.stop()
        self.observer.join()

    def stop(self):
        self.observer.stop()
