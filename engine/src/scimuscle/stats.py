"""Volume and daily statistics for one profile over a local-date window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Any

import psycopg

from . import repository
from .daily_activity import DailyActivity, daily_activity
from .default_tables import DefaultMappingTables
from .models import MuscleValues, Profile, Workout
from .profiles import require_profile
from .resolver import build_exercise_id_mappings, effective_functional_mapping
from .taxonomy import FunctionalGroup
from .volume import (
    VolumeStatItem,
    VolumeStats,
    functional_group_breakdown,
    functional_group_volume,
    scientific_muscle_volume,
)
from .windows import DateWindow


@dataclass(frozen=True)
class VolumeReport:
    scientific: VolumeStats
    functional: VolumeStats
    window: DateWindow

    def as_dict(self) -> dict[str, Any]:
        return {
            "window": {"start": self.window.start.isoformat(), "end": self.window.end.isoformat()},
            "scientific": self.scientific.as_dict(),
            "functional": self.functional.as_dict(),
        }


@dataclass(frozen=True)
class _ProfileContext:
    profile: Profile
    workouts: list[Workout]
    exercise_mappings: dict[str, MuscleValues]


async def _load_context(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    window: DateWindow,
    tz: tzinfo,
    tables: DefaultMappingTables | None,
) -> _ProfileContext:
    profile = await require_profile(conn, profile_id)
    start, end = window.bounds(tz)
    workouts = await repository.fetch_workouts(conn, profile_id=profile_id, start=start, end=end)
    overrides = await repository.fetch_exercise_overrides(conn, profile_id=profile_id)
    mappings = await repository.fetch_exercise_mappings(conn, profile_id=profile_id)
    return _ProfileContext(
        profile=profile,
        workouts=workouts,
        exercise_mappings=build_exercise_id_mappings(
            tables=tables, overrides=overrides, exercise_mappings=mappings
        ),
    )


async def aggregate_volume(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    window: DateWindow,
    *,
    tz: tzinfo,
    tables: DefaultMappingTables | None = None,
) -> VolumeReport:
    context = await _load_context(conn, profile_id, window, tz, tables)
    profile = context.profile
    functional_mapping = effective_functional_mapping(profile.muscle_group_customization)
    return VolumeReport(
        scientific=scientific_muscle_volume(
            context.workouts,
            context.exercise_mappings,
            profile.goals,
            total_goal=profile.total_goal,
        ),
        functional=functional_group_volume(
            context.workouts,
            context.exercise_mappings,
            profile.goals,
            functional_mapping,
            total_goal=profile.total_goal,
        ),
        window=window,
    )


async def group_breakdown(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    group: FunctionalGroup,
    window: DateWindow,
    *,
    tz: tzinfo,
    tables: DefaultMappingTables | None = None,
) -> list[VolumeStatItem]:
    context = await _load_context(conn, profile_id, window, tz, tables)
    profile = context.profile
    scientific = scientific_muscle_volume(
        context.workouts,
        context.exercise_mappings,
        profile.goals,
        total_goal=profile.total_goal,
    )
    return functional_group_breakdown(
        scientific, group, effective_functional_mapping(profile.muscle_group_customization)
    )


async def daily_stats(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    window: DateWindow,
    *,
    tz: tzinfo,
    tables: DefaultMappingTables | None = None,
) -> list[DailyActivity]:
    context = await _load_context(conn, profile_id, window, tz, tables)
    return daily_activity(
        context.workouts,
        window,
        context.exercise_mappings,
        effective_functional_mapping(context.profile.muscle_group_customization),
        tz,
    )
