"""PostgreSQL tables backing the persistence contract."""

from __future__ import annotations

from typing import Any

import psycopg

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        goals JSONB NOT NULL DEFAULT '{}'::jsonb,
        total_goal DOUBLE PRECISION NOT NULL DEFAULT 150,
        muscle_group_customization JSONB NOT NULL DEFAULT '{}'::jsonb,
        custom_muscle_groups JSONB,
        api_key TEXT,
        last_sync_timestamp BIGINT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS workouts (
        id TEXT PRIMARY KEY,
        profile_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        date TIMESTAMPTZ NOT NULL,
        title TEXT NOT NULL DEFAULT '',
        sets JSONB NOT NULL DEFAULT '[]'::jsonb
    )
    """,
    "CREATE INDEX IF NOT EXISTS workouts_profile_date_idx ON workouts (profile_id, date)",
    """
    CREATE TABLE IF NOT EXISTS unmapped_exercises (
        id TEXT PRIMARY KEY,
        profile_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        original_name TEXT NOT NULL,
        normalized_name TEXT NOT NULL,
        first_seen_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        occurrence_count INTEGER NOT NULL CHECK (occurrence_count >= 1),
        UNIQUE (profile_id, normalized_name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS exercise_mappings (
        id TEXT PRIMARY KEY,
        profile_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        original_pattern TEXT NOT NULL,
        canonical_exercise_id TEXT,
        custom_muscle_values JSONB,
        is_ignored BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (profile_id, original_pattern),
        CHECK (
            (canonical_exercise_id IS NOT NULL)::int
            + (custom_muscle_values IS NOT NULL)::int
            + is_ignored::int = 1
        )
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS default_exercise_overrides (
        id TEXT PRIMARY KEY,
        profile_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        exercise_name TEXT NOT NULL,
        custom_muscle_values JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (profile_id, exercise_name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS default_name_mapping_overrides (
        id TEXT PRIMARY KEY,
        profile_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        gym_name TEXT NOT NULL,
        canonical_name TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (profile_id, gym_name)
    )
    """,
)


async def ensure_schema(conn: psycopg.AsyncConnection[Any]) -> None:
    """Create all tables and indexes if they do not exist yet."""
    async with conn.transaction():
        async with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                await cur.execute(statement)
