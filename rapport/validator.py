"""Validation of insight-service responses.

The service is asked for a fixed JSON shape but may return anything: fenced
JSON, partial objects, strings where lists belong, numbers as text. This is
the one place that turns such a response into the complete shape the
analytics record expects. It never raises.
"""

import json
import logging
import math

from .llm import strip_fences

logger = logging.getLogger(__name__)

DEFAULT_TOPIC_NAME = "General Discussion"
DEFAULT_TOPIC_PERCENTAGE = 25


def _missing(field: str) -> str:
    return f"Analysis didn't provide information about {field}"


LIST_FIELDS = ("keyInsights", "areasForGrowth")
TEXT_FIELDS = ("emotionalDynamics", "culturalContext")

DEFAULTS = {
    "keyInsights": [_missing("keyInsights")],
    "emotionalDynamics": _missing("emotionalDynamics"),
    "areasForGrowth": [_missing("areasForGrowth")],
    "topTopics": [
        {"name": "General Discussion", "percentage": 60},
        {"name": "Personal Updates", "percentage": 40},
    ],
    "overallTone": "neutral",
    "culturalContext": _missing("culturalContext"),
    "communicationStyle": {"user": "balanced", "contact": "responsive"},
    "loveLanguage": "Not enough information",
    "connectionScore": 50,
    "relationshipLevel": 5,
    "challengesBadges": ["Communication Initiate"],
    "nextMilestone": "Consistent Engagement: Keep the conversation going regularly",
}

SCORE_RANGES = {
    "connectionScore": (1, 100),
    "relationshipLevel": (1, 10),
}


def validate_insights(raw) -> dict:
    """Return a complete insight dict built from whatever `raw` is.

    Missing or wrongly-typed fields get their defaults; unknown extra
    fields are passed through. The input is never modified.
    """
    data = _as_dict(raw)
    result = dict(data)

    for field in LIST_FIELDS:
        result[field] = _string_list(data.get(field), DEFAULTS[field])
    result["challengesBadges"] = _string_list(
        data.get("challengesBadges"), DEFAULTS["challengesBadges"]
    )

    for field in TEXT_FIELDS + ("overallTone", "loveLanguage", "nextMilestone"):
        result[field] = _text(data.get(field), DEFAULTS[field])

    result["topTopics"] = _topics(data.get("topTopics"))
    result["communicationStyle"] = _style(data.get("communicationStyle"))

    for field, (low, high) in SCORE_RANGES.items():
        result[field] = _score(data.get(field), DEFAULTS[field], low, high)

    return result


def usable_fields(raw) -> set[str]:
    """Names of the fields in `raw` that validate without falling back to a default."""
    data = _as_dict(raw)
    usable = set()
    for field in LIST_FIELDS + ("challengesBadges",):
        if _string_list(data.get(field), []):
            usable.add(field)
    for field in TEXT_FIELDS + ("overallTone", "loveLanguage", "nextMilestone"):
        if _text(data.get(field), ""):
            usable.add(field)
    for field, (low, high) in SCORE_RANGES.items():
        if _score(data.get(field), None, low, high) is not None:
            usable.add(field)
    if _topics(data.get("topTopics"), default=[]):
        usable.add("topTopics")
    style = data.get("communicationStyle")
    if isinstance(style, dict) and any(_text(style.get(p), "") for p in ("user", "contact")):
        usable.add("communicationStyle")
    return usable


# ── Field coercion ───────────────────────────────────────────

def _as_dict(raw) -> dict:
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        text = strip_fences(text)
        try:
            raw = json.loads(text)
        except (ValueError, RecursionError):
            logger.warning(f"insight response is not JSON: {text[:200]}")
            return {}
    if isinstance(raw, dict):
        return raw
    if raw is not None:
        logger.warning(f"insight response is a {type(raw).__name__}, not an object")
    return {}


def _string_list(value, default: list[str]) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else list(default)
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]
        return items or list(default)
    return list(default)


def _text(value, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _topics(value, default: list[dict] | None = None) -> list[dict]:
    if default is None:
        default = DEFAULTS["topTopics"]
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return [dict(t) for t in default]

    topics = []
    for entry in value:
        if isinstance(entry, str):
            if entry.strip():
                topics.append({"name": entry, "percentage": DEFAULT_TOPIC_PERCENTAGE})
        elif isinstance(entry, dict):
            topic = dict(entry)
            name = topic.get("name")
            topic["name"] = name if isinstance(name, str) and name.strip() else DEFAULT_TOPIC_NAME
            topic["percentage"] = _score(
                topic.get("percentage"), DEFAULT_TOPIC_PERCENTAGE, 0, 100
            )
            topics.append(topic)

    return topics or [dict(t) for t in default]


def _style(value) -> dict:
    default = DEFAULTS["communicationStyle"]
    if not isinstance(value, dict):
        return dict(default)
    style = dict(value)
    for party in ("user", "contact"):
        style[party] = _text(value.get(party), default[party])
    return style


def _score(value, default: int | None, low: int, high: int) -> int | None:
    """Coerce to an int inside [low, high]; unusable values give `default`."""
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return default
    if not isinstance(value, (int, float)):
        return default
    try:
        value = float(value)
    except OverflowError:
        return default
    if math.isnan(value) or math.isinf(value):
        return default
    return max(low, min(high, int(round(value))))
