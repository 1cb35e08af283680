"""
Utility functions
"""
import re
from datetime import datetime, timezone


# Anything but letters (incl. accents), digits, space and _ . , : -
_UNSAFE_CHARS = re.compile(r"[^\w .,:-]", re.UNICODE)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column is stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def sanitize_text(text: str, max_len: int = 32) -> str:
    """
    Reduce free text to a safe display form

    Keeps letters, digits, space and the punctuation _ . , : -
    then trims and truncates to max_len characters.

    Example:
        >>> sanitize_text("  <b>Café</b>!  ")
        'bCaféb'
    """
    clean = _UNSAFE_CHARS.sub("", text or "").strip()
    return clean[:max_len]


def seconds_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds()
