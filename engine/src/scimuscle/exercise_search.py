"""Ranked search over the canonical exercise list."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .default_tables import DefaultMappingTables, get_default_tables
from .normalization import normalize_id

ABBREVIATIONS: dict[str, str] = {
    "db": "dumbbell",
    "bb": "barbell",
}

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ExerciseSearchResult:
    id: str
    name: str
    score: float

    def as_dict(self) -> dict[str, object]:
        return {"id": self.id, "name": self.name, "score": round(self.score, 3)}


def all_canonical_exercises(tables: DefaultMappingTables | None = None) -> list[ExerciseSearchResult]:
    resolved_tables = tables or get_default_tables()
    return [
        ExerciseSearchResult(id=normalize_id(name), name=name, score=1.0)
        for name in resolved_tables.exercise_names()
    ]


def expand_abbreviations(query: str) -> str:
    words = _WHITESPACE.split(query.lower())
    return " ".join(ABBREVIATIONS.get(word, word) for word in words)


def match_score(exercise_name: str, query: str) -> float:
    """Score in [0, 1]; 0 means no match.

    exact 1.0, prefix 0.9, every query word found 0.8, otherwise
    0.3 + 0.3 * (matched words / query words).
    """
    name = exercise_name.lower()
    needle = query.lower().strip()
    if not needle:
        return 0.0
    if name == needle:
        return 1.0
    if name.startswith(needle):
        return 0.9

    query_words = [word for word in _WHITESPACE.split(needle) if word]
    name_words = _WHITESPACE.split(name)
    matched = sum(
        1
        for query_word in query_words
        if any(query_word in word or word in query_word for word in name_words)
    )
    if matched == 0:
        return 0.0
    ratio = matched / len(query_words)
    if matched == len(query_words):
        return 0.7 + 0.1 * ratio
    return 0.3 + 0.3 * ratio


def search_exercises(
    query: str,
    limit: int = 10,
    *,
    tables: DefaultMappingTables | None = None,
) -> list[ExerciseSearchResult]:
    expanded = expand_abbreviations(query)
    scored = [
        ExerciseSearchResult(id=exercise.id, name=exercise.name, score=match_score(exercise.name, expanded))
        for exercise in all_canonical_exercises(tables)
    ]
    matches = [result for result in scored if result.score > 0]
    matches.sort(key=lambda result: (-result.score, result.name.lower()))
    return matches[:limit]
