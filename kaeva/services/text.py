"""Claim text helpers."""

import re

MAX_CLAIM_LENGTH = 5000

QUESTION_STARTERS = frozenset(
    {
        "who", "what", "where", "when", "why", "how",
        "is", "are", "was", "were",
        "do", "does", "did",
        "can", "could",
        "will", "would", "should",
    }
)

_WHITESPACE = re.compile(r"\s+")


def normalize_claim(text) -> str:
    """Trim, collapse whitespace and cap the claim length."""
    if not isinstance(text, str) or not text:
        return ""
    return _WHITESPACE.sub(" ", text.strip())[:MAX_CLAIM_LENGTH]


def is_question(text) -> bool:
    """True if the text ends with '?' or opens with a question word."""
    if not isinstance(text, str):
        return False
    trimmed = text.strip()
    if not trimmed:
        return False
    if trimmed.endswith("?"):
        return True
    return trimmed.split()[0].lower() in QUESTION_STARTERS
