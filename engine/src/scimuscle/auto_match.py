"""Suggest canonical exercises for unmapped gym exercise names."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from .default_tables import DefaultMappingTables
from .exercise_search import all_canonical_exercises
from .models import UnmappedExercise
from .normalization import clean_exercise_name

MIN_CONFIDENCE = 0.6

GYM_MARKERS = ("domar", "brama", "italy", "gym", "fitness", "squeeze")

ABBREVIATIONS: dict[str, str] = {
    "ext": "extension",
    "db": "dumbbell",
    "bb": "barbell",
    "ez": "ez bar",
    "ohp": "overhead press",
    "rdl": "romanian deadlift",
    "cgbp": "close grip bench press",
}

POSITION_PREFIXES = (
    "seated",
    "standing",
    "incline",
    "decline",
    "flat",
    "lying",
    "prone",
    "supine",
    "kneeling",
)

UNILATERAL_MARKERS = (
    "single arm",
    "one arm",
    "single hand",
    "one hand",
    "unilateral",
    "single leg",
    "one leg",
)

EQUIPMENT_VARIATIONS = ("machine", "cable", "dumbbell", "barbell", "kettlebell", "band", "bodyweight")

STOPWORDS = frozenset({"no", "the", "and", "or", "of", "to", "in", "on", "at", "for", "with", "from"})

_WHITESPACE = re.compile(r"\s+")


def _pattern(words: Iterable[str]) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(re.escape(word) for word in words) + r")\b", re.IGNORECASE)


_GYM_MARKER_RE = _pattern(GYM_MARKERS)
# Applied in order; unilateral markers are multi-word.
_CORE_NOISE_RES = (
    _pattern(UNILATERAL_MARKERS),
    _pattern(POSITION_PREFIXES),
    _pattern(EQUIPMENT_VARIATIONS),
)


@dataclass(frozen=True)
class AutoMatchSuggestion:
    unmapped_exercise_name: str
    unmapped_normalized_name: str
    suggested_canonical_id: str
    suggested_canonical_name: str
    confidence: float
    match_reason: str

    def as_dict(self) -> dict[str, object]:
        return {
            "unmapped_exercise_name": self.unmapped_exercise_name,
            "unmapped_normalized_name": self.unmapped_normalized_name,
            "suggested_canonical_id": self.suggested_canonical_id,
            "suggested_canonical_name": self.suggested_canonical_name,
            "confidence": round(self.confidence, 3),
            "match_reason": self.match_reason,
        }


def normalize_for_matching(name: str) -> str:
    """Lowercase, drop parentheticals, expand abbreviations, strip gym markers."""
    normalized = clean_exercise_name(name.lower().strip())
    normalized = " ".join(ABBREVIATIONS.get(word, word) for word in _WHITESPACE.split(normalized))
    normalized = _GYM_MARKER_RE.sub("", normalized)
    return _WHITESPACE.sub(" ", normalized).strip()


def extract_core_words(normalized_name: str) -> list[str]:
    name = normalized_name
    for pattern in _CORE_NOISE_RES:
        name = pattern.sub("", name)
    return [
        word
        for word in _WHITESPACE.split(name)
        if len(word) >= 3 and word.lower() not in STOPWORDS
    ]


def _words_match(left: str, right: str) -> bool:
    return left in right or right in left


def matched_core_words(unmapped_core: list[str], canonical_core: list[str]) -> list[str]:
    return [word for word in unmapped_core if any(_words_match(word, other) for other in canonical_core)]


def match_confidence(unmapped_normalized: str, canonical_normalized: str) -> float:
    """1.0 for identical normalized names, otherwise scored on shared core words."""
    if unmapped_normalized == canonical_normalized:
        return 1.0

    unmapped_core = extract_core_words(unmapped_normalized)
    canonical_core = extract_core_words(canonical_normalized)
    if not unmapped_core or not canonical_core:
        return 0.0

    matched = len(matched_core_words(unmapped_core, canonical_core))
    if matched == 0:
        return 0.0

    ratio = matched / min(len(unmapped_core), len(canonical_core))
    if matched == len(unmapped_core) == len(canonical_core):
        return 0.9
    if ratio >= 0.8:
        return 0.7 + 0.2 * ratio
    if ratio >= 0.5:
        return 0.5 + 0.2 * ratio
    return 0.3 * ratio


def generate_auto_match_suggestions(
    unmapped_exercises: Iterable[UnmappedExercise],
    *,
    tables: DefaultMappingTables | None = None,
    min_confidence: float = MIN_CONFIDENCE,
) -> list[AutoMatchSuggestion]:
    """Best canonical candidate per unmapped exercise, if confident enough."""
    canonical = [
        (exercise, normalize_for_matching(exercise.name)) for exercise in all_canonical_exercises(tables)
    ]
    suggestions: list[AutoMatchSuggestion] = []
    for unmapped in unmapped_exercises:
        unmapped_normalized = normalize_for_matching(unmapped.original_name)
        best = None
        best_confidence = 0.0
        for exercise, canonical_normalized in canonical:
            confidence = match_confidence(unmapped_normalized, canonical_normalized)
            if confidence > best_confidence:
                best, best_confidence = (exercise, canonical_normalized), confidence

        if best is None or best_confidence < min_confidence:
            continue
        exercise, canonical_normalized = best
        words = matched_core_words(
            extract_core_words(unmapped_normalized), extract_core_words(canonical_normalized)
        )
        suggestions.append(
            AutoMatchSuggestion(
                unmapped_exercise_name=unmapped.original_name,
                unmapped_normalized_name=unmapped.normalized_name,
                suggested_canonical_id=exercise.id,
                suggested_canonical_name=exercise.name,
                confidence=best_confidence,
                match_reason=(
                    f"Core words match: {', '.join(words)}"
                    if words
                    else "Names match after normalization"
                ),
            )
        )
    return suggestions
