"""Data types passed between the pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True)
class RawExport:
    content: str
    source: str | None = None      # "whatsapp" | "imessage" | None
    contact: str | None = None     # phone number or display name
    name: str = ""                 # file name, for logs

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "RawExport":
        text = data.decode("utf-8", errors="replace")
        if text.startswith("\ufeff"):
            text = text[1:]
        return cls(content=text, **kwargs)


@dataclass
class ParsedMessage:
    text: str
    sender: str
    is_from_contact: bool
    timestamp: datetime
    timestamp_estimated: bool = False

    def to_dict(self) -> dict:
        d = {
            "text": self.text,
            "sender": self.sender,
            "isFromContact": self.is_from_contact,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.timestamp_estimated:
            d["timestampEstimated"] = True
        return d


@dataclass
class CandidateParse:
    parser_id: str
    messages: list[ParsedMessage]

    def __len__(self) -> int:
        return len(self.messages)


@dataclass
class Session:
    messages: list[ParsedMessage]

    @property
    def start(self) -> datetime:
        return self.messages[0].timestamp

    @property
    def end(self) -> datetime:
        return self.messages[-1].timestamp

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "messageCount": len(self.messages),
        }


@dataclass
class MemoryRecord:
    content: str
    sentiment: float
    keywords: set[str]
    source_session: Session
    session_index: int

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "sentiment": round(self.sentiment, 4),
            "keywords": sorted(self.keywords),
            "sourceSession": {"index": self.session_index, **self.source_session.to_dict()},
        }


@dataclass
class ImportResult:
    success: bool
    reason: str = ""
    format: str = "unknown"
    parser_id: str | None = None
    candidate_counts: dict[str, int] = field(default_factory=dict)
    messages: list[ParsedMessage] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)
    analytics: dict[str, Any] | None = None
    memories: list[MemoryRecord] = field(default_factory=list)
    timestamp_fallbacks: int = 0
    dropped_messages: int = 0
    source_name: str = ""

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "reason": self.reason,
            "format": self.format,
            "parser": self.parser_id,
            "candidateCounts": dict(self.candidate_counts),
            "source": self.source_name,
            "timestampFallbacks": self.timestamp_fallbacks,
            "droppedMessages": self.dropped_messages,
            "messages": [m.to_dict() for m in self.messages],
            "sessions": [s.to_dict() for s in self.sessions],
            "analytics": self.analytics,
            "memories": [m.to_dict() for m in self.memories],
        }
