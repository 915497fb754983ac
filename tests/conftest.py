"""Shared pytest fixtures for Rapport tests."""

import json
from datetime import datetime, timedelta

import pytest

from rapport.config import Config
from rapport.models import ParsedMessage


@pytest.fixture
def android_export():
    """A short Android-style WhatsApp export (month-first, 12-hour clock).

    Contains:
    - the end-to-end encryption notice (system line, no sender)
    - a multi-line message
    - a media placeholder (noise)
    - messages from both parties across two days
    """
    return "\n".join([
        "12/31/20, 11:50 PM - Messages and calls are end-to-end encrypted. "
        "No one outside of this chat, not even WhatsApp, can read or listen to them.",
        "12/31/20, 11:59 PM - Alice: Hello",
        "How are you?",
        "1/1/21, 12:05 AM - You: Good! Happy new year, love the fireworks",
        "1/1/21, 12:06 AM - Alice: <Media omitted>",
        "1/1/21, 12:07 AM - Alice: Are you coming to the party tomorrow?",
        "1/1/21, 9:30 AM - You: Yes! Work is off for the weekend",
        "1/2/21, 10:00 AM - Alice: Great, see you there",
    ])


@pytest.fixture
def ios_export():
    """iOS WhatsApp export: bracketed headers, seconds, inline omissions."""
    return "\n".join([
        "\u200e[31/12/20, 11:59:01 PM] Alice: Hello from the beach",
        "[31/12/20, 11:59:30 PM] You: \u200eimage omitted",
        "[01/01/21, 12:01:00 AM] You: Happy new year!",
        "[01/01/21, 12:03:10 AM] Alice: Thanks, miss you",
    ])


@pytest.fixture
def imessage_export():
    """iMessage-style CSV: date time,sender,message (quoted commas kept)."""
    return "\n".join([
        "2022-05-15 14:23:45,Bob,Are we still on for dinner?",
        '2022-05-15 14:25:00,Me,"Yes, 7pm at the usual place"',
        "2022-05-15 14:26:12,Bob,Awesome",
        "2022-05-16 09:00:00,Me,Thanks for last night",
    ])


@pytest.fixture
def make_messages():
    """Factory for ParsedMessage lists.

    Takes (minutes_offset, text, from_contact) triples relative to
    2021-03-01 09:00.
    """
    def _make(rows, start=datetime(2021, 3, 1, 9, 0)):
        return [
            ParsedMessage(
                text=text,
                sender="Alice" if from_contact else "You",
                is_from_contact=from_contact,
                timestamp=start + timedelta(minutes=offset),
            )
            for offset, text, from_contact in rows
        ]
    return _make


@pytest.fixture
def config(tmp_path):
    """Config rooted in tmp_path with insights switched off."""
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "import_dirs": [str(tmp_path / "imports")],
        "output_dir": str(tmp_path / "results"),
        "insights_enabled": False,
        "stale_seconds": 0,
    }))
    return Config(config_path)
