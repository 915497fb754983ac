"""Timestamp normalization for chat exports.

Exports write dates in whatever the exporting phone's locale prefers:
M/D/YY, D/M/YYYY, ISO dates, 12- or 24-hour clocks, with or without
seconds. Each format gets its own entry point so a single call never has
to guess between month-first and day-first.

Unparseable tokens never raise. The caller gets the current time back with
`estimated=True` and a warning is logged, so it can decide whether to keep
or discard the message.
"""

import logging
import re
from datetime import datetime
from typing import NamedTuple

logger = logging.getLogger(__name__)

MONTH_FIRST = "month_first"
DAY_FIRST = "day_first"
ISO = "iso"

KINDS = (MONTH_FIRST, DAY_FIRST, ISO)

_DATE_SPLIT = re.compile(r"[/.\-]")
_TIME_RE = re.compile(
    r"^(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?(?:\s*([ap])\.?\s?m\.?)?$",
    re.IGNORECASE,
)


class TimestampResult(NamedTuple):
    value: datetime
    estimated: bool


def normalize_timestamp(date_token: str, time_token: str, kind: str) -> TimestampResult:
    """Combine a date token and a time token into one datetime.

    Args:
        date_token: e.g. "12/31/20", "31.12.2020", "2022-05-15".
        time_token: e.g. "11:59 PM", "23:59", "9:05:33 am".
        kind: MONTH_FIRST, DAY_FIRST or ISO.

    Returns:
        TimestampResult; `estimated` is True when the tokens could not be
        parsed and `value` is the current time.
    """
    try:
        year, month, day = _split_date(date_token, kind)
        hour, minute, second = _split_time(time_token)
        return TimestampResult(datetime(year, month, day, hour, minute, second), False)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(
            "Unparseable timestamp %r %r (%s): %s; using current time",
            date_token, time_token, kind, e,
        )
        return TimestampResult(datetime.now(), True)


def normalize_month_first(date_token: str, time_token: str) -> TimestampResult:
    return normalize_timestamp(date_token, time_token, MONTH_FIRST)


def normalize_day_first(date_token: str, time_token: str) -> TimestampResult:
    return normalize_timestamp(date_token, time_token, DAY_FIRST)


def normalize_iso(date_token: str, time_token: str) -> TimestampResult:
    return normalize_timestamp(date_token, time_token, ISO)


# ── Token splitting ──────────────────────────────────────────

def _split_date(token: str, kind: str) -> tuple[int, int, int]:
    if kind not in KINDS:
        raise ValueError(f"unknown date kind {kind!r}")

    parts = _DATE_SPLIT.split(token.strip())
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"bad date {token!r}")

    if kind == ISO:
        y, m, d = parts
    elif kind == MONTH_FIRST:
        m, d, y = parts
    else:
        d, m, y = parts

    return _expand_year(y), int(m), int(d)


def _expand_year(y: str) -> int:
    if len(y) == 4:
        return int(y)
    if len(y) <= 2:
        return 2000 + int(y)
    raise ValueError(f"bad year {y!r}")


def _split_time(token: str) -> tuple[int, int, int]:
    # WhatsApp puts a narrow no-break space before AM/PM
    cleaned = token.replace("\u202f", " ").replace("\xa0", " ").strip()
    match = _TIME_RE.match(cleaned)
    if not match:
        raise ValueError(f"bad time {token!r}")

    hour = int(match.group(1))
    minute = int(match.group(2))
    second = int(match.group(3) or 0)
    meridiem = (match.group(4) or "").lower()

    if meridiem:
        if hour > 12:
            raise ValueError(f"hour {hour} with {meridiem}m")
        if meridiem == "p" and hour != 12:
            hour += 12
        elif meridiem == "a" and hour == 12:
            hour = 0

    return hour, minute, second
