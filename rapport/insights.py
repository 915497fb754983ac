"""Relationship insights from the LLM, with a template fallback.

The model gets the transcript and is asked for one JSON object. Whatever
comes back goes through `validate_insights()` before it touches the
analytics record; when the call fails the template from
`fallback_analysis()` is used instead.
"""

import logging

from .config import Config
from .llm import call_llm_json
from .models import ParsedMessage
from .signals import message_sentiment
from .topics import normalize_topic_distribution
from .validator import usable_fields, validate_insights

logger = logging.getLogger(__name__)

SOURCE_SERVICE = "service"
SOURCE_FALLBACK = "fallback"
SOURCE_DISABLED = "disabled"

# Service values for these replace the deterministic ones in the record
GAMIFIED_FIELDS = (
    "connectionScore", "relationshipLevel", "challengesBadges",
    "nextMilestone", "communicationStyle",
)

SYSTEM_PROMPT = (
    "You are an expert relationship analyst. You understand Indian languages, "
    "especially Telugu mixed with English, and read code-switched chats with "
    "cultural sensitivity. Respond ONLY with one valid JSON object, no "
    "preamble and no markdown."
)

PROMPT_TEMPLATE = """Analyze this imported conversation between the user and {contact}.

The conversation may mix Telugu words and phrases with English. Pay attention to
cultural context, terms of endearment, and when each language is used.

CONVERSATION:
{transcript}

Respond with a JSON object with exactly these fields:
{{
  "keyInsights": ["3-5 most important insights about this relationship"],
  "emotionalDynamics": "the emotional patterns between these two people",
  "areasForGrowth": ["2-3 areas where the relationship could grow"],
  "topTopics": [{{"name": "Topic", "percentage": 40}}],
  "overallTone": "positive | negative | neutral | mixed",
  "culturalContext": "notes on culturally specific elements",
  "communicationStyle": {{"user": "direct", "contact": "expressive"}},
  "loveLanguage": "detected love language",
  "connectionScore": 1-100,
  "relationshipLevel": 1-10,
  "challengesBadges": ["badges earned through their communication"],
  "nextMilestone": "Name: the next milestone in their relationship journey"
}}"""


def format_transcript(messages: list[ParsedMessage], contact: str,
                      max_chars: int = 12000) -> str:
    """`<Contact>: text` / `You: text` lines, keeping the most recent ones."""
    lines = [
        f"{contact if m.is_from_contact else 'You'}: {m.text}"
        for m in messages
    ]
    kept = []
    size = 0
    for line in reversed(lines):
        size += len(line) + 1
        if size > max_chars and kept:
            break
        kept.append(line)
    if len(kept) < len(lines):
        logger.info(f"transcript truncated to the last {len(kept)} of {len(lines)} messages")
    return "\n".join(reversed(kept))


def build_insight_prompt(messages: list[ParsedMessage], contact: str = "Contact",
                         max_chars: int = 12000) -> str:
    return PROMPT_TEMPLATE.format(
        contact=contact,
        transcript=format_transcript(messages, contact, max_chars),
    )


def fallback_analysis(messages: list[ParsedMessage]) -> dict:
    """Template insights when the model is unavailable.

    Only the tone and connection score depend on the conversation, via
    the mean lexicon sentiment.
    """
    tone = "mixed"
    connection_score = 65
    if messages:
        avg = sum(message_sentiment(m.text) for m in messages) / len(messages)
        if avg > 0.2:
            tone, connection_score = "positive", 75
        elif avg < -0.2:
            tone, connection_score = "negative", 45

    return {
        "keyInsights": [
            "This conversation appears to contain meaningful exchanges",
            "Regular communication patterns are evident",
            "There's a foundation of mutual respect",
        ],
        "emotionalDynamics": "The emotional patterns suggest a comfortable, established communication style.",
        "areasForGrowth": [
            "More consistent communication might strengthen the connection",
            "Deeper discussions on shared interests could enhance engagement",
            "Setting regular check-in times could improve relationship maintenance",
        ],
        "topTopics": [
            {"name": "General Discussion", "percentage": 50},
            {"name": "Personal Updates", "percentage": 30},
            {"name": "Plans", "percentage": 20},
        ],
        "overallTone": tone,
        "culturalContext": "The conversation shows typical communication patterns for close contacts",
        "connectionScore": connection_score,
        "communicationStyle": {"user": "direct", "contact": "responsive"},
        "relationshipLevel": 4,
        "challengesBadges": ["Conversation Starter", "Regular Communicator"],
        "nextMilestone": "Consistent Engagement: Maintain regular meaningful exchanges for two weeks",
    }


def request_insights(messages: list[ParsedMessage], contact: str,
                     config: Config) -> tuple[dict, str]:
    """Ask the configured provider for insights.

    Returns (raw response, source). The response is unvalidated; on any
    failure it is the fallback template and source is "fallback".
    """
    prompt = build_insight_prompt(
        messages, contact, max_chars=config.get("insight_max_chars", 12000)
    )
    raw = call_llm_json(
        prompt,
        system=SYSTEM_PROMPT,
        provider=config.get("insight_provider", "claude-cli"),
        model=config.get("insight_model", "haiku"),
        timeout=config.get("insight_timeout", 120),
        **_provider_kwargs(config),
    )
    if isinstance(raw, dict) and raw:
        return raw, SOURCE_SERVICE

    logger.warning("insight service unavailable, using fallback analysis")
    return fallback_analysis(messages), SOURCE_FALLBACK


def _provider_kwargs(config: Config) -> dict:
    if config.get("insight_provider") == "openai":
        return {
            "api_url": config.get("openai_api_url", ""),
            "api_key": config.get("openai_api_key", ""),
        }
    return {}


def merge_insights(analytics: dict, raw, source: str) -> dict:
    """Attach validated insights to an analytics record (in place).

    Only fields the service returned in a usable form override the
    deterministic values; validator defaults and the fallback template
    never do.
    """
    if source == SOURCE_DISABLED:
        analytics["insights"] = None
        analytics["insightSource"] = SOURCE_DISABLED
        return analytics

    insights = validate_insights(raw)
    analytics["insights"] = insights
    analytics["insightSource"] = source

    if source != SOURCE_SERVICE:
        return analytics

    usable = usable_fields(raw)
    if "topTopics" in usable:
        analytics["topicDistribution"] = normalize_topic_distribution(
            (t["name"], t["percentage"]) for t in insights["topTopics"]
        )
    for field in GAMIFIED_FIELDS:
        if field in usable:
            analytics[field] = insights[field]
    return analytics
