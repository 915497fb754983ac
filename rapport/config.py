"""Configuration for Rapport.

Reads from ~/.rapport/config.json with sensible defaults.
"""

import json
from datetime import timedelta
from pathlib import Path


DEFAULT_CONFIG_PATH = Path.home() / ".rapport" / "config.json"

DEFAULTS = {
    # Paths
    "import_dirs": [str(Path.home() / "rapport-imports")],
    "output_dir": str(Path.home() / ".rapport" / "results"),

    # Segmentation and signal windows
    "session_gap_hours": 3,
    "initiation_gap_hours": 3,
    "response_window_hours": 24,

    # Memory records
    "memory_cap": 5,
    "memory_keywords": False,  # add YAKE keyphrases to memory keywords

    # What to do with messages whose timestamp could not be parsed:
    # "keep" stamps them with the import time, "drop" discards them
    "unparseable_timestamps": "keep",

    # Insight service
    "insights_enabled": True,
    "insight_provider": "claude-cli",  # or "openai"
    "insight_model": "haiku",
    "insight_timeout": 120,
    "insight_max_chars": 12000,
    "openai_api_url": "https://api.openai.com/v1/chat/completions",
    "openai_api_key": "",

    # Watcher
    "stale_seconds": 30,
    "default_contact": "",
}


class Config:
    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        self.config_path = config_path
        self._data = dict(DEFAULTS)
        self._load()

    def _load(self):
        if self.config_path.exists():
            with open(self.config_path) as f:
                user_config = json.load(f)
            self._data.update(user_config)

    def save(self):
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump(self._data, f, indent=2)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def hours(self, key: str) -> timedelta:
        """Read an `*_hours` setting as a timedelta."""
        return timedelta(hours=float(self._data[key]))

    def set(self, key: str, value):
        self._data[key] = value

    def __getitem__(self, key):
        return self._data[key]

    def as_dict(self) -> dict:
        return dict(self._data)
