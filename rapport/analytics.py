"""Assemble the analytics record for one imported conversation.

Everything here is deterministic and derived from the extracted signals.
LLM insights are merged in afterwards by `insights.merge_insights()`.
"""

from .models import ParsedMessage, Session
from .signals import CONTACT, USER
from .topics import normalize_topic_distribution

PRIMARY_TOPICS = 3

# (minimum level, milestone), checked top-down
MILESTONES = (
    (10, "Lifelong Connection: Keep your rhythm going for another year"),
    (7, "Meaningful Conversation Master: Have 5 deep conversations about important topics"),
    (4, "Consistent Engagement: Maintain regular meaningful exchanges for two weeks"),
    (1, "Getting Started: Exchange messages on five different days"),
)

# Badge thresholds
CURIOUS_QUESTION_RATE = 0.2
EMOJI_RATE = 0.3
QUICK_RESPONSE_SECONDS = 300
DEEP_MESSAGE_LENGTH = 80
BILINGUAL_SHARE = 10.0


def build_analytics(messages: list[ParsedMessage], sessions: list[Session],
                    signals: dict, contact: str = "Contact") -> dict:
    n = signals["message_count"]
    sentiment = signals["sentiment_avg"]
    connection_score = _clamp(int(65 + 20 * sentiment + 0.5), 1, 100)
    level = _clamp(n // 20, 1, 10)

    record = {
        "messageCount": n,
        "messagesBySender": {
            contact: signals["contact_count"],
            "You": signals["user_count"],
        },
        "userMessageCount": signals["user_count"],
        "contactMessageCount": signals["contact_count"],
        "sentimentScore": round(sentiment, 4),
        "sentimentLabel": signals["sentiment_label"],
        "topicDistribution": normalize_topic_distribution(signals["topic_counts"]),
        "auxiliaryTopics": {k: v for k, v in signals["auxiliary_counts"].items() if v},
        "primaryTopics": primary_topics(signals["theme_counts"]),
        "communicationBalance": signals["balance"],
        "responseTimeAvg": round(signals["response_avg"], 1),
        "responseTimeByParty": {
            party: round(avg, 1) for party, avg in signals["response_avg_by_party"].items()
        },
        "initiations": dict(signals["initiations"]),
        "initiationRatio": round(signals["initiation_ratio"], 4),
        "questionFrequency": round(signals["question_total"] / n, 4) if n else 0.0,
        "emojiUsage": round(signals["emoji_total"] / n, 4) if n else 0.0,
        "messageLengthAvg": round(signals["length_avg"], 1),
        "languageMix": dict(signals["language_mix"]),
        "sessionCount": len(sessions),
        "dateRange": date_range(messages),
        "timeRange": time_range(messages),
        "connectionScore": connection_score,
        "relationshipLevel": level,
        "communicationStyle": communication_style(signals["message_ratio"]),
        "nextMilestone": next_milestone(level),
    }
    record["challengesBadges"] = badges(record, signals)
    return record


def primary_topics(theme_counts: dict[str, int]) -> list[str]:
    ranked = sorted(
        ((name, count) for name, count in theme_counts.items() if count > 0),
        key=lambda item: -item[1],
    )
    return [name for name, _ in ranked[:PRIMARY_TOPICS]]


def communication_style(message_ratio: float) -> dict:
    """Who writes more, by the user/contact message ratio."""
    if message_ratio > 1.5:
        user = "expressive"
    elif message_ratio < 0.5:
        user = "reserved"
    else:
        user = "balanced"

    if message_ratio < 0.7:
        contact = "expressive"
    elif message_ratio > 2:
        contact = "reserved"
    else:
        contact = "balanced"
    return {"user": user, "contact": contact}


def badges(record: dict, signals: dict) -> list[str]:
    initiations = signals["initiations"]
    earned = [
        "Conversation Starter" if initiations[USER] >= initiations[CONTACT]
        else "Regular Communicator"
    ]
    if record["questionFrequency"] >= CURIOUS_QUESTION_RATE:
        earned.append("Curious Mind")
    if record["emojiUsage"] >= EMOJI_RATE:
        earned.append("Emoji Enthusiast")
    user_response = signals["response_avg_by_party"][USER]
    if 0 < user_response < QUICK_RESPONSE_SECONDS:
        earned.append("Quick Responder")
    if record["messageLengthAvg"] >= DEEP_MESSAGE_LENGTH:
        earned.append("Deep Conversation Initiator")
    mix = record["languageMix"]
    if mix["telugu"] >= BILINGUAL_SHARE and mix["english"] >= BILINGUAL_SHARE:
        earned.append("Bilingual Communicator")
    return earned


def next_milestone(level: int) -> str:
    for minimum, milestone in MILESTONES:
        if level >= minimum:
            return milestone
    return MILESTONES[-1][1]


# ── Time span ────────────────────────────────────────────────

def date_range(messages: list[ParsedMessage]) -> dict | None:
    if not messages:
        return None
    stamps = sorted(m.timestamp for m in messages)
    return {"start": stamps[0].isoformat(), "end": stamps[-1].isoformat()}


def time_range(messages: list[ParsedMessage]) -> str:
    """'N messages over a few days / M months / Y years'."""
    if len(messages) < 2:
        return ""
    stamps = sorted(m.timestamp for m in messages)
    first, last = stamps[0], stamps[-1]
    months = (last.year - first.year) * 12 + (last.month - first.month)
    count = len(stamps)
    if months < 1:
        return f"{count} messages over a few days"
    if months < 12:
        return f"{count} messages over {months} months"
    return f"{count} messages over {round(months / 12, 1):g} years"


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))
