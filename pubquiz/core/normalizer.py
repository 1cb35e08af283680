"""
Answer matching

Submitted guesses are reduced to lowercase letters and digits without
diacritics before they are tested against a question's answer pattern.
"""
import re
import unicodedata
from functools import lru_cache
from typing import Pattern


# Letters that carry their mark in the glyph itself and survive NFKD
_FOLDS = str.maketrans({
    "ł": "l", "ø": "o", "đ": "d", "ð": "d", "ħ": "h", "ı": "i",
    "ß": "ss", "æ": "ae", "œ": "oe", "þ": "th",
})


def normalize_answer(text: str) -> str:
    """
    Normalize free text for matching

    Lowercases, strips diacritics to their base characters and drops
    every character that is not a letter or a digit.

    Example:
        >>> normalize_answer("Crème Brûlée!")
        'cremebrulee'
        >>> normalize_answer("Łódź Straße")
        'lodzstrasse'
    """
    decomposed = unicodedata.normalize("NFKD", (text or "").lower()).translate(_FOLDS)
    return "".join(
        ch for ch in decomposed
        if not unicodedata.combining(ch) and ch.isalnum()
    )


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Pattern:
    """
    Compile an answer pattern (case-insensitive)

    Raises:
        re.error: If the pattern is not a valid regular expression
    """
    return re.compile(pattern, re.IGNORECASE)


def answer_matches(text: str, pattern: str) -> bool:
    """
    Whether a guess satisfies an answer pattern

    The pattern is searched anywhere in the normalized guess; authors
    anchor it with ^...$ when the whole guess must match.
    """
    return compile_pattern(pattern).search(normalize_answer(text)) is not None
