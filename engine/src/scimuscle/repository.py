"""psycopg queries for profiles, workouts, unmapped exercises, mappings and overrides.

Every function takes an open ``AsyncConnection`` and never manages
transactions itself; callers wrap multi-statement work in
``conn.transaction()``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Json

from .errors import ConsistencyError
from .models import (
    DefaultExerciseOverride,
    DefaultNameMappingOverride,
    ExerciseMapping,
    MuscleGroupConfig,
    Profile,
    UnmappedExercise,
    Workout,
    new_id,
)

# ---------------------------------------------------------------------------
# Row converters
# ---------------------------------------------------------------------------


def profile_from_row(row: dict[str, Any]) -> Profile:
    groups = row.get("custom_muscle_groups")
    return Profile(
        id=row["id"],
        name=row["name"],
        goals=row.get("goals") or {},
        total_goal=row["total_goal"],
        muscle_group_customization=row.get("muscle_group_customization") or {},
        custom_muscle_groups=MuscleGroupConfig.model_validate(groups) if groups else None,
        api_key=row.get("api_key"),
        last_sync_timestamp=row.get("last_sync_timestamp"),
        created_at=row["created_at"],
    )


def workout_from_row(row: dict[str, Any]) -> Workout:
    return Workout.model_validate(
        {
            "id": row["id"],
            "profile_id": row["profile_id"],
            "date": row["date"],
            "title": row.get("title") or "",
            "sets": row.get("sets") or [],
        }
    )


def exercise_mapping_from_row(row: dict[str, Any]) -> ExerciseMapping:
    return ExerciseMapping.from_columns(
        canonical_exercise_id=row.get("canonical_exercise_id"),
        custom_muscle_values=row.get("custom_muscle_values"),
        is_ignored=bool(row.get("is_ignored")),
        id=row["id"],
        profile_id=row["profile_id"],
        original_pattern=row["original_pattern"],
        created_at=row["created_at"],
    )


def _sets_payload(workout: Workout) -> Json:
    return Json([s.model_dump(mode="json") for s in workout.sets])


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


async def insert_profile(conn: psycopg.AsyncConnection[Any], profile: Profile) -> None:
    groups = profile.custom_muscle_groups
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO profiles (
                id, name, goals, total_goal, muscle_group_customization,
                custom_muscle_groups, api_key, last_sync_timestamp, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                profile.id,
                profile.name,
                Json(profile.goals),
                profile.total_goal,
                Json(profile.muscle_group_customization),
                Json(groups.model_dump(mode="json")) if groups is not None else None,
                profile.api_key,
                profile.last_sync_timestamp,
                profile.created_at,
            ),
        )


async def fetch_profile(conn: psycopg.AsyncConnection[Any], *, profile_id: str) -> Profile | None:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute("SELECT * FROM profiles WHERE id = %s", (profile_id,))
        row = await cur.fetchone()
    return profile_from_row(row) if row is not None else None


async def fetch_profiles(conn: psycopg.AsyncConnection[Any]) -> list[Profile]:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute("SELECT * FROM profiles ORDER BY created_at, id")
        rows = await cur.fetchall()
    return [profile_from_row(row) for row in rows]


async def update_profile_name(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    name: str,
) -> None:
    async with conn.cursor() as cur:
        await cur.execute("UPDATE profiles SET name = %s WHERE id = %s", (name, profile_id))


async def delete_profile(conn: psycopg.AsyncConnection[Any], *, profile_id: str) -> bool:
    """Delete the profile; child rows go with it through ON DELETE CASCADE."""
    async with conn.cursor() as cur:
        await cur.execute("DELETE FROM profiles WHERE id = %s", (profile_id,))
        return cur.rowcount > 0


async def update_profile_goals(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    goals: dict[str, float],
    total_goal: float,
) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE profiles SET goals = %s, total_goal = %s WHERE id = %s",
            (Json(goals), total_goal, profile_id),
        )


async def update_profile_customization(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    customization: dict[str, str],
) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE profiles SET muscle_group_customization = %s WHERE id = %s",
            (Json(customization), profile_id),
        )


async def update_profile_muscle_groups(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    config: MuscleGroupConfig | None,
) -> None:
    payload = Json(config.model_dump(mode="json")) if config is not None else None
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE profiles SET custom_muscle_groups = %s WHERE id = %s",
            (payload, profile_id),
        )


async def update_profile_api_key(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    api_key: str | None,
) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE profiles SET api_key = %s WHERE id = %s",
            (api_key, profile_id),
        )


async def update_profile_sync_checkpoint(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    last_sync_timestamp: int,
) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            "UPDATE profiles SET last_sync_timestamp = %s WHERE id = %s",
            (last_sync_timestamp, profile_id),
        )


# ---------------------------------------------------------------------------
# Workouts
# ---------------------------------------------------------------------------


async def fetch_workout_owners(
    conn: psycopg.AsyncConnection[Any],
    *,
    workout_ids: Sequence[str],
) -> dict[str, str]:
    """workout id -> owning profile id, for the ids that exist."""
    if not workout_ids:
        return {}
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            "SELECT id, profile_id FROM workouts WHERE id = ANY(%s)",
            (list(workout_ids),),
        )
        rows = await cur.fetchall()
    return {str(row["id"]): str(row["profile_id"]) for row in rows}


async def insert_workout(conn: psycopg.AsyncConnection[Any], workout: Workout) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO workouts (id, profile_id, date, title, sets)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (workout.id, workout.profile_id, workout.date, workout.title, _sets_payload(workout)),
        )


async def update_workout(conn: psycopg.AsyncConnection[Any], workout: Workout) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE workouts
            SET date = %s,
                title = %s,
                sets = %s
            WHERE id = %s
              AND profile_id = %s
            """,
            (workout.date, workout.title, _sets_payload(workout), workout.id, workout.profile_id),
        )


async def delete_workouts(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    workout_ids: Sequence[str],
) -> int:
    """Delete the listed workouts that belong to ``profile_id``; return the count."""
    if not workout_ids:
        return 0
    async with conn.cursor() as cur:
        await cur.execute(
            "DELETE FROM workouts WHERE profile_id = %s AND id = ANY(%s)",
            (profile_id, list(workout_ids)),
        )
        return cur.rowcount


async def fetch_workouts(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Workout]:
    """Workouts for a profile with ``start <= date < end``; open bounds when ``None``."""
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            """
            SELECT id, profile_id, date, title, sets
            FROM workouts
            WHERE profile_id = %s
              AND (%s::timestamptz IS NULL OR date >= %s::timestamptz)
              AND (%s::timestamptz IS NULL OR date < %s::timestamptz)
            ORDER BY date, id
            """,
            (profile_id, start, start, end, end),
        )
        rows = await cur.fetchall()
    return [workout_from_row(row) for row in rows]


# ---------------------------------------------------------------------------
# Unmapped exercises
# ---------------------------------------------------------------------------


async def upsert_unmapped_exercise(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    original_name: str,
    normalized_name: str,
    count: int,
    now: datetime,
) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            INSERT INTO unmapped_exercises (
                id, profile_id, original_name, normalized_name, first_seen_at, occurrence_count
            )
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (profile_id, normalized_name) DO UPDATE SET
                occurrence_count = unmapped_exercises.occurrence_count + EXCLUDED.occurrence_count
            """,
            (new_id(), profile_id, original_name, normalized_name, now, count),
        )


async def fetch_unmapped_exercises(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
) -> list[UnmappedExercise]:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            """
            SELECT *
            FROM unmapped_exercises
            WHERE profile_id = %s
            ORDER BY occurrence_count DESC, normalized_name
            """,
            (profile_id,),
        )
        rows = await cur.fetchall()
    return [UnmappedExercise.model_validate(row) for row in rows]


async def delete_unmapped_exercise(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    normalized_name: str,
) -> bool:
    async with conn.cursor() as cur:
        await cur.execute(
            "DELETE FROM unmapped_exercises WHERE profile_id = %s AND normalized_name = %s",
            (profile_id, normalized_name),
        )
        return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Exercise mappings
# ---------------------------------------------------------------------------


async def insert_exercise_mapping(
    conn: psycopg.AsyncConnection[Any],
    mapping: ExerciseMapping,
) -> None:
    custom = mapping.custom_muscle_values
    try:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO exercise_mappings (
                    id, profile_id, original_pattern, canonical_exercise_id,
                    custom_muscle_values, is_ignored, created_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    mapping.id,
                    mapping.profile_id,
                    mapping.original_pattern,
                    mapping.canonical_exercise_id,
                    Json(custom) if custom is not None else None,
                    mapping.is_ignored,
                    mapping.created_at,
                ),
            )
    except psycopg.errors.UniqueViolation as exc:
        raise ConsistencyError(
            code="duplicate_mapping",
            message=f"Profile already maps pattern {mapping.original_pattern!r}.",
            field="original_pattern",
        ) from exc


async def fetch_exercise_mappings(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
) -> list[ExerciseMapping]:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            """
            SELECT *
            FROM exercise_mappings
            WHERE profile_id = %s
            ORDER BY created_at DESC, id
            """,
            (profile_id,),
        )
        rows = await cur.fetchall()
    return [exercise_mapping_from_row(row) for row in rows]


async def fetch_exercise_mapping(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    original_pattern: str,
) -> ExerciseMapping | None:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            """
            SELECT *
            FROM exercise_mappings
            WHERE profile_id = %s
              AND original_pattern = %s
            """,
            (profile_id, original_pattern),
        )
        row = await cur.fetchone()
    return exercise_mapping_from_row(row) if row is not None else None


async def delete_exercise_mapping(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    mapping_id: str,
) -> bool:
    async with conn.cursor() as cur:
        await cur.execute(
            "DELETE FROM exercise_mappings WHERE profile_id = %s AND id = %s",
            (profile_id, mapping_id),
        )
        return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Default table overrides
# ---------------------------------------------------------------------------


async def upsert_exercise_override(
    conn: psycopg.AsyncConnection[Any],
    override: DefaultExerciseOverride,
) -> DefaultExerciseOverride:
    """Insert or replace; an existing row keeps its id and ``created_at``."""
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            """
            INSERT INTO default_exercise_overrides (
                id, profile_id, exercise_name, custom_muscle_values, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (profile_id, exercise_name) DO UPDATE SET
                custom_muscle_values = EXCLUDED.custom_muscle_values,
                updated_at = EXCLUDED.updated_at
            RETURNING *
            """,
            (
                override.id,
                override.profile_id,
                override.exercise_name,
                Json(override.custom_muscle_values),
                override.created_at,
                override.updated_at,
            ),
        )
        row = await cur.fetchone()
    return DefaultExerciseOverride.model_validate(row)


async def fetch_exercise_overrides(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
) -> list[DefaultExerciseOverride]:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            """
            SELECT *
            FROM default_exercise_overrides
            WHERE profile_id = %s
            ORDER BY exercise_name
            """,
            (profile_id,),
        )
        rows = await cur.fetchall()
    return [DefaultExerciseOverride.model_validate(row) for row in rows]


async def delete_exercise_override(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    exercise_name: str,
) -> bool:
    async with conn.cursor() as cur:
        await cur.execute(
            "DELETE FROM default_exercise_overrides WHERE profile_id = %s AND exercise_name = %s",
            (profile_id, exercise_name),
        )
        return cur.rowcount > 0


async def upsert_name_mapping_override(
    conn: psycopg.AsyncConnection[Any],
    override: DefaultNameMappingOverride,
) -> DefaultNameMappingOverride:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            """
            INSERT INTO default_name_mapping_overrides (
                id, profile_id, gym_name, canonical_name, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (profile_id, gym_name) DO UPDATE SET
                canonical_name = EXCLUDED.canonical_name,
                updated_at = EXCLUDED.updated_at
            RETURNING *
            """,
            (
                override.id,
                override.profile_id,
                override.gym_name,
                override.canonical_name,
                override.created_at,
                override.updated_at,
            ),
        )
        row = await cur.fetchone()
    return DefaultNameMappingOverride.model_validate(row)


async def fetch_name_mapping_overrides(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
) -> list[DefaultNameMappingOverride]:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(
            """
            SELECT *
            FROM default_name_mapping_overrides
            WHERE profile_id = %s
            ORDER BY gym_name
            """,
            (profile_id,),
        )
        rows = await cur.fetchall()
    return [DefaultNameMappingOverride.model_validate(row) for row in rows]


async def delete_name_mapping_override(
    conn: psycopg.AsyncConnection[Any],
    *,
    profile_id: str,
    gym_name: str,
) -> bool:
    async with conn.cursor() as cur:
        await cur.execute(
            "DELETE FROM default_name_mapping_overrides WHERE profile_id = %s AND gym_name = %s",
            (profile_id, gym_name),
        )
        return cur.rowcount > 0
