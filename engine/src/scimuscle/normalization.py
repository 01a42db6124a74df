"""Exercise name normalization shared by parsers, ingestion and search."""

import re

_PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_exercise_name(name: str | None) -> str:
    """Strip parenthetical qualifiers from an exercise name.

    "Bench Press (Dumbbell)" -> "Bench Press"
    "Bicep Curl (Dumbbell) (Single Arm)" -> "Bicep Curl"
    """
    if not name:
        return ""
    return _PARENTHETICAL_RE.sub("", name).strip()


def normalize_id(name: str | None) -> str:
    """Convert an exercise name to its normalized id ("Bench Press (Dumbbell)" -> "bench-press")."""
    cleaned = clean_exercise_name(name)
    if not cleaned:
        return ""
    return _WHITESPACE_RE.sub("-", cleaned.lower())
