"""Detection and bookkeeping of exercises the profile cannot resolve yet.

Sightings are accumulated in memory across a whole import batch, then written
with one upsert per (profile, exercise id) so a batch that logs "Cable Y
Raise" twelve times increments the counter by twelve in a single statement.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Set
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import psycopg

from . import metrics, repository
from .errors import IngestionPartialFailure
from .models import ExerciseMapping, UnmappedExercise, Workout, utcnow

logger = logging.getLogger(__name__)


@dataclass
class UnmappedSighting:
    original_name: str
    count: int = 0


SightingKey = tuple[str, str]


def known_exercise_ids(
    canonical_ids: Set[str],
    exercise_mappings: Iterable[ExerciseMapping],
) -> frozenset[str]:
    """Default canonical ids plus the patterns the profile already mapped."""
    return frozenset(canonical_ids) | {mapping.original_pattern for mapping in exercise_mappings}


def collect_unmapped_sightings(
    workouts: Iterable[Workout],
    known_ids: Set[str],
) -> dict[SightingKey, UnmappedSighting]:
    """Count sets per (profile id, exercise id) whose id is not known.

    Exercise ids are already normalized by the parser. The first original
    name seen for an id is the one kept.
    """
    sightings: dict[SightingKey, UnmappedSighting] = {}
    for workout in workouts:
        for workout_set in workout.sets:
            exercise_id = workout_set.exercise_id
            if exercise_id in known_ids:
                continue
            key = (workout.profile_id, exercise_id)
            sighting = sightings.get(key)
            if sighting is None:
                sighting = sightings[key] = UnmappedSighting(original_name=workout_set.original_name)
            sighting.count += 1
    return sightings


async def record_unmapped_sightings(
    conn: psycopg.AsyncConnection[Any],
    sightings: Mapping[SightingKey, UnmappedSighting],
    *,
    now: datetime | None = None,
) -> int:
    """Upsert one row per sighting in a single transaction; return rows touched."""
    if not sightings:
        return 0
    seen_at = now or utcnow()
    async with conn.transaction():
        for (profile_id, normalized_name), sighting in sightings.items():
            await repository.upsert_unmapped_exercise(
                conn,
                profile_id=profile_id,
                original_name=sighting.original_name,
                normalized_name=normalized_name,
                count=sighting.count,
                now=seen_at,
            )
    return len(sightings)


async def track_unmapped_best_effort(
    conn: psycopg.AsyncConnection[Any],
    sightings: Mapping[SightingKey, UnmappedSighting],
    *,
    now: datetime | None = None,
) -> IngestionPartialFailure | None:
    """Record sightings; a failure is logged and returned, never raised.

    Runs after the workout write has committed, so losing the bookkeeping must
    not undo or fail the import.
    """
    try:
        await record_unmapped_sightings(conn, sightings, now=now)
    except Exception as exc:
        metrics.record_unmapped_tracking_failure()
        logger.warning(
            "Unmapped exercise tracking failed for %d exercises",
            len(sightings),
            exc_info=True,
            extra={"scimuscle_error_code": "unmapped_tracking_failed"},
        )
        failure = IngestionPartialFailure(
            code="unmapped_tracking_failed",
            message=f"Workouts were imported but unmapped exercise tracking failed: {exc}",
        )
        failure.__cause__ = exc
        return failure
    return None


async def list_unmapped_exercises(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
) -> list[UnmappedExercise]:
    """Unmapped exercises for a profile, most frequently logged first."""
    return await repository.fetch_unmapped_exercises(conn, profile_id=profile_id)


async def delete_unmapped_exercise(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    normalized_name: str,
) -> bool:
    return await repository.delete_unmapped_exercise(
        conn, profile_id=profile_id, normalized_name=normalized_name
    )
