"""Profile-scoped overrides of the default exercise and gym-name tables.

Saving an override is an upsert keyed by (profile, exercise name) or
(profile, gym name). Reverting deletes the row, which puts the key back on
default resolution.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import psycopg

from . import repository
from .default_tables import DefaultMappingTables, get_default_tables
from .errors import ValidationError
from .models import (
    DefaultExerciseOverride,
    DefaultNameMappingOverride,
    utcnow,
    validate_muscle_values,
)
from .profiles import require_profile

logger = logging.getLogger(__name__)


def _require_text(value: str, *, field: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(code="empty_name", message=f"{field} must not be empty.", field=field)
    return cleaned


async def save_exercise_override(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    exercise_name: str,
    muscle_values: Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> DefaultExerciseOverride:
    """Replace an exercise's default muscle values for this profile.

    Values are validated before anything is written. The exercise does not
    have to exist in the default table.
    """
    name = _require_text(exercise_name, field="exercise_name")
    values = validate_muscle_values(muscle_values, field="custom_muscle_values")
    await require_profile(conn, profile_id)
    timestamp = now or utcnow()
    override = DefaultExerciseOverride(
        profile_id=profile_id,
        exercise_name=name,
        custom_muscle_values=values,
        created_at=timestamp,
        updated_at=timestamp,
    )
    saved = await repository.upsert_exercise_override(conn, override)
    logger.info(
        "Saved muscle value override for %s",
        name,
        extra={"scimuscle_profile_id": profile_id},
    )
    return saved


async def revert_exercise_override(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    exercise_name: str,
) -> bool:
    """Drop the override; return whether one existed."""
    return await repository.delete_exercise_override(
        conn, profile_id=profile_id, exercise_name=exercise_name
    )


async def list_exercise_overrides(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
) -> list[DefaultExerciseOverride]:
    return await repository.fetch_exercise_overrides(conn, profile_id=profile_id)


async def get_exercise_override(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    exercise_name: str,
) -> DefaultExerciseOverride | None:
    for override in await list_exercise_overrides(conn, profile_id):
        if override.exercise_name == exercise_name:
            return override
    return None


async def customized_exercise_names(conn: psycopg.AsyncConnection[Any], profile_id: str) -> set[str]:
    return {override.exercise_name for override in await list_exercise_overrides(conn, profile_id)}


async def save_name_mapping_override(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    gym_name: str,
    canonical_name: str,
    *,
    tables: DefaultMappingTables | None = None,
    now: datetime | None = None,
) -> DefaultNameMappingOverride:
    """Point a gym exercise name at a different canonical exercise."""
    gym = _require_text(gym_name, field="gym_name")
    canonical = _require_text(canonical_name, field="canonical_name")
    resolved_tables = tables or get_default_tables()
    if canonical not in resolved_tables.exercise_muscles:
        raise ValidationError(
            code="unknown_canonical_exercise",
            message=f"{canonical!r} is not a canonical exercise.",
            field="canonical_name",
            docs_hint="Pick a name from the default exercise list.",
        )
    await require_profile(conn, profile_id)
    timestamp = now or utcnow()
    override = DefaultNameMappingOverride(
        profile_id=profile_id,
        gym_name=gym,
        canonical_name=canonical,
        created_at=timestamp,
        updated_at=timestamp,
    )
    return await repository.upsert_name_mapping_override(conn, override)


async def revert_name_mapping_override(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    gym_name: str,
) -> bool:
    return await repository.delete_name_mapping_override(
        conn, profile_id=profile_id, gym_name=gym_name
    )


async def list_name_mapping_overrides(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
) -> list[DefaultNameMappingOverride]:
    return await repository.fetch_name_mapping_overrides(conn, profile_id=profile_id)


async def customized_gym_names(conn: psycopg.AsyncConnection[Any], profile_id: str) -> set[str]:
    return {override.gym_name for override in await list_name_mapping_overrides(conn, profile_id)}


async def name_mapping_overrides_map(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
) -> dict[str, str]:
    """gym name -> canonical name, overrides only."""
    return {
        override.gym_name: override.canonical_name
        for override in await list_name_mapping_overrides(conn, profile_id)
    }
