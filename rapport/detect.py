"""Export format detection.

Looks at the start of a file for the header-line shape of each known
export and returns the first family that matches.
"""

import re

WHATSAPP = "whatsapp"
IMESSAGE = "imessage"
UNKNOWN = "unknown"

FAMILIES = (WHATSAPP, IMESSAGE)

SAMPLE_CHARS = 1000

_SIGNATURES = (
    # iOS WhatsApp: [31/12/20, 11:59:01 PM] Alice: ...
    (WHATSAPP, re.compile(r"\[\d{1,2}[/.]\d{1,2}[/.]\d{2,4},\s+\d{1,2}:\d{2}:\d{2}\s*(?:[AP]M)?\]", re.I)),
    # Android WhatsApp: 12/31/20, 11:59 PM - Alice: ...
    (WHATSAPP, re.compile(r"\d{1,2}[/.]\d{1,2}[/.]\d{2,4},?\s+\d{1,2}:\d{2}(?::\d{2})?\s*(?:[ap]\.?\s?m\.?)?\s+-", re.I)),
    # iMessage CSV: 2022-05-15 14:23:45,Alice,...
    (IMESSAGE, re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2},")),
)


def detect_format(content: str, hint: str | None = None) -> str:
    """Classify raw export content as whatsapp, imessage or unknown.

    A recognised `hint` (the caller's declared source) wins over the
    content sniffing.
    """
    if hint and hint.strip().lower() in FAMILIES:
        return hint.strip().lower()

    sample = (content or "")[:SAMPLE_CHARS]
    for family, pattern in _SIGNATURES:
        if pattern.search(sample):
            return family
    return UNKNOWN
