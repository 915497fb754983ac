"""Line parsers for WhatsApp and iMessage exports.

Every export variant gets its own header-line regex. All parsers of a
family run over the same content and the candidate with the most messages
wins; there is no schema to tell us which variant a file really is, and a
too-strict regex fails quietly by finding fewer messages.

Parsers are pure: all per-run state lives in a MessageAccumulator and a
SenderClassifier created inside `LineParser.parse()`.
"""

import csv
import logging
import re
from dataclasses import dataclass

from .constants import (
    IMESSAGE_SELF_ALIASES,
    LINE_PREFIX_MARKS,
    WHATSAPP_IOS_NOISE,
    WHATSAPP_NOISE,
    WHATSAPP_SELF_ALIASES,
)
from .detect import IMESSAGE, WHATSAPP
from .models import CandidateParse, ParsedMessage
from .timestamps import DAY_FIRST, ISO, MONTH_FIRST, normalize_timestamp

logger = logging.getLogger(__name__)

_MERIDIEM = r"(?:[ap]\.?\s?m\.?)"
# a month field outside 1-12 means the line is in the other date order
_MONTH = r"(?:0?[1-9]|1[0-2])"


# ── Sender attribution ───────────────────────────────────────

class SenderClassifier:
    """Decides whether a sender name is the contact or the exporting user."""

    def __init__(self, contact: str | None, self_aliases: frozenset[str]):
        self.contact = (contact or "").strip()
        self.self_aliases = self_aliases
        self._contact_digits = re.sub(r"\D", "", self.contact)
        self.display_name: str | None = None

    def is_contact(self, sender: str) -> bool:
        name = sender.strip()
        if name.lower() in self.self_aliases:
            return False
        if not self.contact:
            return True
        # the first non-self sender is the contact as the export names them
        if self.display_name is None:
            self.display_name = name
        return name == self.display_name or self._matches_identifier(name)

    def _matches_identifier(self, name: str) -> bool:
        if self.contact.lower() in name.lower():
            return True
        # Phone numbers are formatted differently per export: +1 555-0100 vs 5550100
        if len(self._contact_digits) >= 7:
            digits = re.sub(r"\D", "", name)
            if len(digits) >= 7 and (
                digits.endswith(self._contact_digits) or self._contact_digits.endswith(digits)
            ):
                return True
        return False


# ── Continuation merging ─────────────────────────────────────

class MessageAccumulator:
    """Folds header and continuation lines into finished messages.

    `start()` finalizes the message under construction and opens a new one.
    `close()` finalizes without opening (used when a header line is dropped
    as noise). Lines that belong to no header are appended to the open
    message, or to the last finalized one when nothing is open.
    """

    def __init__(self):
        self.messages: list[ParsedMessage] = []
        self.current: ParsedMessage | None = None
        self.orphan_lines = 0

    def start(self, message: ParsedMessage):
        self.close()
        self.current = message

    def close(self):
        if self.current is not None:
            if self.current.text.strip():
                self.messages.append(self.current)
            self.current = None

    def add_continuation(self, line: str):
        target = self.current
        if target is None and self.messages:
            target = self.messages[-1]
        if target is None:
            self.orphan_lines += 1
            return
        target.text = f"{target.text}\n{line}" if target.text else line

    def finish(self) -> list[ParsedMessage]:
        self.close()
        return self.messages


# ── Parsers ──────────────────────────────────────────────────

@dataclass(frozen=True)
class LineParser:
    parser_id: str
    family: str
    header: re.Pattern
    date_kind: str
    noise: tuple[str, ...] = ()
    self_aliases: frozenset[str] = WHATSAPP_SELF_ALIASES
    system: re.Pattern | None = None  # dated lines without a sender

    def match(self, line: str) -> tuple[str, str, str, str] | None:
        """Split a header line into (date, time, sender, body)."""
        m = self.header.match(line)
        if not m:
            return None
        date_token, time_token, sender, body = m.groups()
        return date_token, time_token, sender, body

    def parse(self, content: str, contact: str | None = None) -> CandidateParse:
        classifier = SenderClassifier(contact, self.self_aliases)
        acc = MessageAccumulator()
        dropped = 0

        for raw_line in content.splitlines():
            line = _clean_line(raw_line)
            if not line.strip():
                continue

            fields = self.match(line)
            if fields is None:
                if self.system is not None and self.system.match(line):
                    acc.close()
                    dropped += 1
                else:
                    acc.add_continuation(line)
                continue

            date_token, time_token, sender, body = fields
            body = body.lstrip(LINE_PREFIX_MARKS).rstrip()
            if any(marker in body for marker in self.noise):
                acc.close()
                dropped += 1
                continue

            stamp = normalize_timestamp(date_token, time_token, self.date_kind)
            sender = sender.strip()
            acc.start(ParsedMessage(
                text=body,
                sender=sender,
                is_from_contact=classifier.is_contact(sender),
                timestamp=stamp.value,
                timestamp_estimated=stamp.estimated,
            ))

        messages = acc.finish()
        logger.debug(
            "%s: %d messages, %d dropped system lines, %d orphan lines",
            self.parser_id, len(messages), dropped, acc.orphan_lines,
        )
        return CandidateParse(parser_id=self.parser_id, messages=messages)


@dataclass(frozen=True)
class CsvLineParser(LineParser):
    """Header is `date time,` followed by CSV `sender,message`."""

    def match(self, line: str) -> tuple[str, str, str, str] | None:
        m = self.header.match(line)
        if not m:
            return None
        date_token, time_token, rest = m.groups()
        try:
            fields = next(csv.reader([rest]))
        except (csv.Error, StopIteration):
            return None
        if len(fields) < 2:
            return None
        sender = fields[0]
        body = ",".join(fields[1:]).strip()
        return date_token, time_token, sender, body


def _clean_line(line: str) -> str:
    return line.lstrip(LINE_PREFIX_MARKS).rstrip()


_ANDROID_SYSTEM = re.compile(
    rf"^\d{{1,2}}[/.\-]\d{{1,2}}[/.\-]\d{{2,4}},?\s+\d{{1,2}}:\d{{1,2}}(?::\d{{2}})?\s*{_MERIDIEM}?\s*-\s",
    re.IGNORECASE,
)
_IOS_SYSTEM = re.compile(r"^\[\d{1,2}[/.]\d{1,2}[/.]\d{2,4},\s+\d{1,2}:\d{2}:\d{2}[^\]]*\]")

WHATSAPP_STANDARD = LineParser(
    parser_id="standard",
    family=WHATSAPP,
    # 12/31/20, 11:59 PM - Alice: Hello
    header=re.compile(
        rf"^({_MONTH}/\d{{1,2}}/\d{{2,4}}),\s+(\d{{1,2}}:\d{{2}}(?::\d{{2}})?\s*{_MERIDIEM}?)\s*-\s*([^:]+):\s+(.+)$",
        re.IGNORECASE,
    ),
    date_kind=MONTH_FIRST,
    noise=WHATSAPP_NOISE,
    system=_ANDROID_SYSTEM,
)

WHATSAPP_INTERNATIONAL = LineParser(
    parser_id="international",
    family=WHATSAPP,
    # 31/12/20, 23:59 - Alice: Hello   |   31.12.2020, 11:59 pm - Alice: Hello
    header=re.compile(
        rf"^(\d{{1,2}}[/.\-]{_MONTH}[/.\-]\d{{2,4}}),?\s+(\d{{1,2}}:\d{{1,2}}\s*{_MERIDIEM}?)\s*-\s*([^:]+):\s+(.+)$",
        re.IGNORECASE,
    ),
    date_kind=DAY_FIRST,
    noise=WHATSAPP_NOISE,
    system=_ANDROID_SYSTEM,
)

WHATSAPP_SAMPLE = LineParser(
    parser_id="sample",
    family=WHATSAPP,
    # 31/12/20, 9:59 pm - Alice: Hello  (meridiem and spaced dash required)
    header=re.compile(
        rf"^(\d{{1,2}}/{_MONTH}/\d{{2}}),\s+(\d{{1,2}}:\d{{1,2}}\s+(?:am|pm))\s+-\s+([^:]+):\s+(.+)$",
        re.IGNORECASE,
    ),
    date_kind=DAY_FIRST,
    noise=WHATSAPP_NOISE,
    system=_ANDROID_SYSTEM,
)

WHATSAPP_IOS = LineParser(
    parser_id="ios",
    family=WHATSAPP,
    # [31/12/20, 11:59:01 PM] Alice: Hello
    header=re.compile(
        r"^\[(\d{1,2}[/.]\d{1,2}[/.]\d{2,4}),\s+(\d{1,2}:\d{2}:\d{2}\s*(?:[AP]M)?)\]\s+([^:]+):\s*(.*)$",
        re.IGNORECASE,
    ),
    date_kind=DAY_FIRST,
    noise=WHATSAPP_IOS_NOISE,
    system=_IOS_SYSTEM,
)

IMESSAGE_CSV = CsvLineParser(
    parser_id="imessage",
    family=IMESSAGE,
    # 2022-05-15 14:23:45,Alice,See you soon
    header=re.compile(r'^"?(\d{4}-\d{1,2}-\d{1,2})[ T](\d{1,2}:\d{2}(?::\d{2})?)"?,(.*)$'),
    date_kind=ISO,
    self_aliases=IMESSAGE_SELF_ALIASES,
)

WHATSAPP_PARSERS = (WHATSAPP_STANDARD, WHATSAPP_INTERNATIONAL, WHATSAPP_SAMPLE, WHATSAPP_IOS)
IMESSAGE_PARSERS = (IMESSAGE_CSV,)

PARSERS_BY_FAMILY = {
    WHATSAPP: WHATSAPP_PARSERS,
    IMESSAGE: IMESSAGE_PARSERS,
}


# ── Ensemble + selection ─────────────────────────────────────

def run_ensemble(content: str, family: str, contact: str | None = None) -> list[CandidateParse]:
    """Run every parser registered for `family`, in registration order."""
    parsers = PARSERS_BY_FAMILY.get(family, ())
    return [p.parse(content, contact) for p in parsers]


def select_best(candidates: list[CandidateParse]) -> CandidateParse | None:
    """Pick the candidate with the most messages.

    Only a strictly greater count replaces the current pick, so ties keep
    the earliest registered parser.
    """
    best = None
    for candidate in candidates:
        if best is None or len(candidate) > len(best):
            best = candidate
    return best
