"""Split a message stream into conversational sessions."""

from datetime import timedelta

from .models import ParsedMessage, Session

DEFAULT_SESSION_GAP = timedelta(hours=3)


def segment_sessions(messages: list[ParsedMessage],
                     threshold: timedelta = DEFAULT_SESSION_GAP) -> list[Session]:
    """Group messages into sessions separated by more than `threshold` of silence.

    Single pass, input order preserved: concatenating the sessions gives
    back `messages` exactly. Expects chronologically sorted input.
    """
    sessions: list[Session] = []
    current: list[ParsedMessage] = []
    previous = None

    for message in messages:
        if previous is not None and message.timestamp - previous > threshold:
            sessions.append(Session(current))
            current = []
        current.append(message)
        previous = message.timestamp

    if current:
        sessions.append(Session(current))
    return sessions
