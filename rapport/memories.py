"""Compact memory records distilled from conversation sessions.

A session becomes a memory when it carries either a clear mood or at least
one recognisable topic. Records are emitted in session order until the cap
is reached.
"""

import logging
from collections import Counter

from .models import MemoryRecord, Session
from .signals import message_sentiment, message_topics, sentiment_label

logger = logging.getLogger(__name__)

MIN_SESSION_MESSAGES = 2
SENTIMENT_THRESHOLD = 0.4
CONTENT_TOPICS = 2

# Lazy-loaded extractor
_yake_extractor = None


def _get_yake():
    global _yake_extractor
    if _yake_extractor is None:
        import yake
        _yake_extractor = yake.KeywordExtractor(
            lan="en", n=3, top=15, dedupLim=0.7
        )
    return _yake_extractor


def synthesize_memories(sessions: list[Session], cap: int = 5,
                        extract_keywords: bool = False) -> list[MemoryRecord]:
    memories = []
    if cap <= 0:
        return memories

    for index, session in enumerate(sessions):
        if len(session.messages) < MIN_SESSION_MESSAGES:
            continue

        texts = [m.text for m in session.messages]
        sentiment = sum(message_sentiment(t) for t in texts) / len(texts)
        topic_hits = Counter()
        for text in texts:
            topic_hits.update(message_topics(text))

        if abs(sentiment) <= SENTIMENT_THRESHOLD and not topic_hits:
            continue

        label = sentiment_label(sentiment)
        dominant = [name for name, _ in topic_hits.most_common(CONTENT_TOPICS)]

        content = f"Conversation on {session.start.date().isoformat()}"
        if abs(sentiment) > SENTIMENT_THRESHOLD:
            content += f" with a {label} tone"
        if dominant:
            content += f" about {' and '.join(dominant)}"

        keywords = set(topic_hits) | {label}
        if extract_keywords:
            keywords |= _keyphrases("\n".join(texts))

        memories.append(MemoryRecord(
            content=content,
            sentiment=sentiment,
            keywords=keywords,
            source_session=session,
            session_index=index,
        ))
        if len(memories) >= cap:
            break

    return memories


def _keyphrases(text: str) -> set[str]:
    try:
        extracted = _get_yake().extract_keywords(text)
    except Exception as e:
        logger.warning(f"keyword extraction failed: {e}")
        return set()
    return {kw.lower() for kw, _ in extracted[:5]}
