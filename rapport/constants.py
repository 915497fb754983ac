"""Shared lexicons and tables for the Rapport pipeline."""

# ── Sentiment lexicon ────────────────────────────────────────

POSITIVE_WORDS = {
    "happy", "love", "great", "thanks", "good", "awesome", "excellent",
}

NEGATIVE_WORDS = {
    "sad", "angry", "sorry", "bad", "hate", "terrible", "awful",
}

SENTIMENT_STEP = 0.2

# (lower bound, label), checked top-down with a strict `>`
SENTIMENT_BANDS = (
    (0.5, "very positive"),
    (0.1, "positive"),
    (-0.1, "neutral"),
    (-0.5, "negative"),
)
LOWEST_SENTIMENT_LABEL = "very negative"


# ── Topic tables ─────────────────────────────────────────────

TOPIC_CATEGORIES = {
    "Work": ["work", "job", "office", "meeting", "project", "boss", "client",
             "deadline", "email", "company", "business"],
    "Family": ["family", "kids", "parents", "mom", "dad", "sister", "brother",
               "child", "baby", "spouse", "wife", "husband"],
    "Health": ["doctor", "sick", "health", "exercise", "gym", "workout", "diet",
               "medication", "therapy", "sleep", "symptoms"],
    "Social": ["party", "dinner", "lunch", "drinks", "hangout", "meet up",
               "event", "friend", "dating", "restaurant", "bar"],
    "Travel": ["trip", "vacation", "travel", "flight", "hotel", "visit", "tour",
               "beach", "destination", "ticket", "passport"],
    "Plans": ["plan", "schedule", "next week", "weekend", "tomorrow", "tonight",
              "future", "calendar", "date", "event"],
    "Emotions": ["feel", "happy", "sad", "angry", "excited", "worried",
                 "stress", "love", "anxiety", "hope", "depression"],
    "Hobbies": ["hobby", "game", "music", "movie", "book", "reading", "play",
                "sports", "art", "cooking", "gardening"],
    "Financial": ["money", "bill", "payment", "budget", "purchase", "buy",
                  "expense", "loan", "investment", "savings"],
    "Education": ["school", "study", "class", "learning", "course",
                  "university", "college", "degree", "test", "exam"],
}

# Romanised Telugu that shows up in code-switched chats
TELUGU_KEYWORDS = {
    "Greetings": ["namaskaram", "ela unnaru", "bagunava", "emi chesthunnav"],
    "Family": ["amma", "nanna", "akka", "anna", "tammudu", "chelli"],
    "Endearment": ["bangaram", "praanam", "prema", "kantri"],
    "Food": ["annam", "pappu", "kura", "ruchi", "tinu", "bhojnam"],
    "Time": ["repu", "ippudu", "ratri", "udayam", "sayantram"],
}

# Coarse conversational themes; only the first matching theme counts
THEME_KEYWORDS = {
    "conflict": ["argue", "sorry", "misunderstand", "wrong", "upset", "angry",
                 "disagree"],
    "support": ["help", "support", "there for you", "listen", "understand",
                "appreciate"],
    "humor": ["lol", "haha", "\U0001F602", "funny", "joke", "laugh"],
    "planning": ["plan", "schedule", "tomorrow", "weekend", "meet", "time"],
    "emotion": ["feel", "love", "miss", "happy", "sad", "worried", "care"],
    "routine": ["always", "usually", "often", "every day", "habit"],
}
GENERAL_THEME = "general"

DEFAULT_TOPIC_DISTRIBUTION = (
    ("General Discussion", 70),
    ("Plans", 15),
    ("Personal Updates", 15),
)


# ── Character classes ────────────────────────────────────────

EMOJI_RANGES = (
    (0x1F300, 0x1F5FF),
    (0x1F600, 0x1F64F),
    (0x1F680, 0x1F6FF),
    (0x1F700, 0x1F77F),
    (0x1F780, 0x1F7FF),
    (0x1F800, 0x1F8FF),
    (0x1F900, 0x1F9FF),
    (0x1FA00, 0x1FA6F),
    (0x1FA70, 0x1FAFF),
    (0x2600, 0x26FF),
    (0x2700, 0x27BF),
)

TELUGU_RANGE = (0x0C00, 0x0C7F)


# ── Export noise ─────────────────────────────────────────────

# System bodies dropped by the Android-style WhatsApp parsers
WHATSAPP_NOISE = (
    "Messages and calls are end-to-end encrypted",
    "<Media omitted>",
    "You blocked this contact",
    "You unblocked this contact",
)

# iOS exports mark attachments inline instead of "<Media omitted>"
WHATSAPP_IOS_NOISE = WHATSAPP_NOISE + (
    "document omitted",
    "image omitted",
    "video omitted",
    "audio omitted",
    "sticker omitted",
    "GIF omitted",
    "Contact card omitted",
    "You deleted this message",
    "This message was deleted",
)

WHATSAPP_SELF_ALIASES = frozenset({"you"})
IMESSAGE_SELF_ALIASES = frozenset({"me", "you"})

# Leading invisible marks found at the start of exported lines
LINE_PREFIX_MARKS = "\ufeff\u200e\u200f"
