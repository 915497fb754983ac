"""Per-message and aggregate conversation signals.

Pure mechanical extraction: no LLM, no I/O. Lexicon sentiment, keyword
topic tagging, emoji and question counts, response times, who starts
conversations, and a rough script-based language mix.
"""

import re
from collections import Counter
from datetime import timedelta

from .constants import (
    EMOJI_RANGES,
    GENERAL_THEME,
    LOWEST_SENTIMENT_LABEL,
    NEGATIVE_WORDS,
    POSITIVE_WORDS,
    SENTIMENT_BANDS,
    SENTIMENT_STEP,
    TELUGU_KEYWORDS,
    TELUGU_RANGE,
    THEME_KEYWORDS,
    TOPIC_CATEGORIES,
)
from .models import ParsedMessage

USER = "user"
CONTACT = "contact"

_WORD_RE = re.compile(r"[a-z']+")
_EMOJI_RE = re.compile(
    "[" + "".join(f"\\U{lo:08x}-\\U{hi:08x}" for lo, hi in EMOJI_RANGES) + "]"
)
_TELUGU_RE = re.compile(f"[\\u{TELUGU_RANGE[0]:04x}-\\u{TELUGU_RANGE[1]:04x}]")
_LATIN_RE = re.compile(r"[A-Za-z]")


def _compile_table(table: dict[str, list[str]]) -> dict[str, list[re.Pattern]]:
    # whole-word match; lookarounds instead of \b so emoji keywords work too
    return {
        name: [re.compile(rf"(?<!\w){re.escape(kw.lower())}(?!\w)") for kw in keywords]
        for name, keywords in table.items()
    }


_TOPIC_PATTERNS = _compile_table(TOPIC_CATEGORIES)
_TELUGU_PATTERNS = _compile_table(TELUGU_KEYWORDS)
_THEME_PATTERNS = _compile_table(THEME_KEYWORDS)


# ── Per message ──────────────────────────────────────────────

def message_sentiment(text: str) -> float:
    """Lexicon score in [-1, 1]: +0.2 per positive word, -0.2 per negative."""
    score = 0.0
    for word in _WORD_RE.findall(text.lower()):
        if word in POSITIVE_WORDS:
            score += SENTIMENT_STEP
        elif word in NEGATIVE_WORDS:
            score -= SENTIMENT_STEP
    return max(-1.0, min(1.0, round(score, 10)))


def sentiment_label(score: float) -> str:
    for bound, label in SENTIMENT_BANDS:
        if score > bound:
            return label
    return LOWEST_SENTIMENT_LABEL


def message_topics(text: str, patterns: dict[str, list[re.Pattern]] = _TOPIC_PATTERNS) -> list[str]:
    """Categories hit by `text`, each at most once, in table order."""
    lowered = text.lower()
    return [
        name for name, pats in patterns.items()
        if any(p.search(lowered) for p in pats)
    ]


def auxiliary_topics(text: str) -> list[str]:
    return message_topics(text, _TELUGU_PATTERNS)


def message_theme(text: str) -> str:
    """First matching conversational theme, or 'general'."""
    hits = message_topics(text, _THEME_PATTERNS)
    return hits[0] if hits else GENERAL_THEME


def count_emojis(text: str) -> int:
    return len(_EMOJI_RE.findall(text))


def is_question(text: str) -> bool:
    return "?" in text


def language_mix(texts: list[str]) -> dict[str, float]:
    """Share of Telugu-script vs Latin-script tokens, in percent."""
    telugu = english = 0
    for text in texts:
        for token in text.split():
            if _TELUGU_RE.search(token):
                telugu += 1
            elif _LATIN_RE.search(token):
                english += 1
    total = telugu + english
    if not total:
        return {"telugu": 0.0, "english": 0.0}
    return {
        "telugu": round(telugu * 100 / total, 2),
        "english": round(english * 100 / total, 2),
    }


# ── Aggregate ────────────────────────────────────────────────

def _party(message: ParsedMessage) -> str:
    return CONTACT if message.is_from_contact else USER


def extract_signals(messages: list[ParsedMessage],
                    initiation_gap: timedelta = timedelta(hours=3),
                    response_window: timedelta = timedelta(hours=24)) -> dict:
    """Walk the message stream once and collect every aggregate signal."""
    counts = Counter()
    initiations = Counter()
    response_samples: dict[str, list[float]] = {USER: [], CONTACT: []}
    topic_counts = Counter({name: 0 for name in TOPIC_CATEGORIES})
    auxiliary_counts = Counter({name: 0 for name in TELUGU_KEYWORDS})
    theme_counts = Counter({name: 0 for name in THEME_KEYWORDS})
    theme_counts[GENERAL_THEME] = 0

    sentiments = []
    lengths = []
    emoji_total = 0
    question_total = 0
    previous = None
    current_day = None

    for message in messages:
        text = message.text
        party = _party(message)
        counts[party] += 1

        sentiments.append(message_sentiment(text))
        lengths.append(len(text))
        emoji_total += count_emojis(text)
        if is_question(text):
            question_total += 1

        for name in message_topics(text):
            topic_counts[name] += 1
        for name in auxiliary_topics(text):
            auxiliary_counts[name] += 1
        theme_counts[message_theme(text)] += 1

        if previous is not None:
            gap = message.timestamp - previous.timestamp
            # only alternating turns count as a response; multi-day gaps are not replies
            if _party(previous) != party and timedelta(0) < gap < response_window:
                response_samples[party].append(gap.total_seconds())

        day = message.timestamp.date()
        if day != current_day:
            current_day = day
            initiations[party] += 1
        elif previous is not None and message.timestamp - previous.timestamp >= initiation_gap:
            initiations[party] += 1

        previous = message

    n = len(messages)
    all_samples = response_samples[USER] + response_samples[CONTACT]
    avg_sentiment = sum(sentiments) / n if n else 0.0

    return {
        "message_count": n,
        "user_count": counts[USER],
        "contact_count": counts[CONTACT],
        "sentiments": sentiments,
        "sentiment_avg": avg_sentiment,
        "sentiment_label": sentiment_label(avg_sentiment),
        "response_samples": response_samples,
        "response_avg": _mean(all_samples),
        "response_avg_by_party": {
            USER: _mean(response_samples[USER]),
            CONTACT: _mean(response_samples[CONTACT]),
        },
        "initiations": {USER: initiations[USER], CONTACT: initiations[CONTACT]},
        "initiation_ratio": initiations[USER] / ((initiations[USER] + initiations[CONTACT]) or 1),
        "message_ratio": counts[USER] / (counts[CONTACT] or 1),
        "balance": communication_balance(counts[USER], counts[CONTACT]),
        "topic_counts": dict(topic_counts),
        "auxiliary_counts": dict(auxiliary_counts),
        "theme_counts": dict(theme_counts),
        "emoji_total": emoji_total,
        "question_total": question_total,
        "length_avg": _mean(lengths),
        "language_mix": language_mix([m.text for m in messages]),
    }


def communication_balance(user_count: int, contact_count: int) -> str:
    """balanced inside the 80-120% band, otherwise who sends more."""
    ratio = user_count / (contact_count or 1)
    if 0.8 < ratio < 1.2:
        return "balanced"
    if ratio >= 1.2:
        return "user-dominant"
    return "contact-dominant"


def _mean(values: list) -> float:
    return sum(values) / len(values) if values else 0.0
