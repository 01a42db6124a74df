"""User-authored resolutions for exercises the default table does not know."""

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
    CanonicalResolution,
    CustomResolution,
    ExerciseMapping,
    IgnoredResolution,
    utcnow,
    validate_muscle_values,
)
from .profiles import require_profile

logger = logging.getLogger(__name__)


def build_resolution(
    *,
    canonical_exercise_id: str | None = None,
    custom_muscle_values: Mapping[str, Any] | None = None,
    ignore: bool = False,
    tables: DefaultMappingTables | None = None,
) -> CanonicalResolution | CustomResolution | IgnoredResolution:
    """Turn the three mutually exclusive strategies into one resolution."""
    chosen = sum([canonical_exercise_id is not None, custom_muscle_values is not None, ignore])
    if chosen != 1:
        raise ValidationError(
            code="invalid_mapping_strategy",
            message="Choose exactly one of canonical exercise, custom muscle values, or ignore.",
            field="resolution",
        )
    if canonical_exercise_id is not None:
        resolved_tables = tables or get_default_tables()
        if canonical_exercise_id not in resolved_tables.canonical_ids:
            raise ValidationError(
                code="unknown_canonical_exercise",
                message=f"{canonical_exercise_id!r} is not a canonical exercise id.",
                field="canonical_exercise_id",
            )
        return CanonicalResolution(canonical_exercise_id=canonical_exercise_id)
    if custom_muscle_values is not None:
        values = validate_muscle_values(custom_muscle_values, field="custom_muscle_values")
        return CustomResolution(muscle_values=values)
    return IgnoredResolution()


async def create_exercise_mapping(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    original_pattern: str,
    *,
    canonical_exercise_id: str | None = None,
    custom_muscle_values: Mapping[str, Any] | None = None,
    ignore: bool = False,
    tables: DefaultMappingTables | None = None,
    now: datetime | None = None,
) -> ExerciseMapping:
    """Save a mapping and drop the matching unmapped-exercise row atomically.

    A second mapping for the same pattern raises ``ConsistencyError``.
    """
    pattern = original_pattern.strip()
    if not pattern:
        raise ValidationError(
            code="empty_name", message="original_pattern must not be empty.", field="original_pattern"
        )
    resolution = build_resolution(
        canonical_exercise_id=canonical_exercise_id,
        custom_muscle_values=custom_muscle_values,
        ignore=ignore,
        tables=tables,
    )
    await require_profile(conn, profile_id)
    mapping = ExerciseMapping(
        profile_id=profile_id,
        original_pattern=pattern,
        resolution=resolution,
        created_at=now or utcnow(),
    )
    async with conn.transaction():
        await repository.insert_exercise_mapping(conn, mapping)
        removed = await repository.delete_unmapped_exercise(
            conn, profile_id=profile_id, normalized_name=pattern
        )
    logger.info(
        "Mapped %s as %s%s",
        pattern,
        resolution.kind,
        " (cleared unmapped entry)" if removed else "",
        extra={"scimuscle_profile_id": profile_id},
    )
    return mapping


async def list_exercise_mappings(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
) -> list[ExerciseMapping]:
    return await repository.fetch_exercise_mappings(conn, profile_id=profile_id)


async def get_mapping_by_pattern(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    original_pattern: str,
) -> ExerciseMapping | None:
    return await repository.fetch_exercise_mapping(
        conn, profile_id=profile_id, original_pattern=original_pattern
    )


async def delete_exercise_mapping(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    mapping_id: str,
) -> bool:
    """Remove a mapping. The pattern is tracked as unmapped again on its next import."""
    return await repository.delete_exercise_mapping(conn, profile_id=profile_id, mapping_id=mapping_id)
