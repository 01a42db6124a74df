"""Profile lifecycle, goals, taxonomy customization and muscle group config."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import psycopg

from . import repository
from .errors import NotFoundError, ValidationError
from .models import MuscleGroupConfig, Profile, validate_functional_customization
from .muscle_groups import DEFAULT_MUSCLE_GROUP_CONFIG, validate_muscle_group_config
from .taxonomy import DEFAULT_TOTAL_GOAL, is_scientific_muscle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveMuscleGroupConfig:
    config: MuscleGroupConfig
    is_default: bool


def _validate_goal(value: Any, *, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(code="invalid_goal", message=f"{field} must be a number.", field=field)
    goal = float(value)
    if math.isnan(goal) or goal < 0:
        raise ValidationError(
            code="invalid_goal",
            message=f"{field} must be a non-negative number, got {value!r}",
            field=field,
        )
    return goal


def validate_goals(goals: Mapping[str, Any]) -> dict[str, float]:
    cleaned: dict[str, float] = {}
    for muscle, value in goals.items():
        if not is_scientific_muscle(muscle):
            raise ValidationError(
                code="unknown_muscle",
                message=f"Unknown scientific muscle: {muscle!r}",
                field=f"goals.{muscle}",
            )
        cleaned[muscle] = _validate_goal(value, field=f"goals.{muscle}")
    return cleaned


async def create_profile(
    conn: psycopg.AsyncConnection[Any],
    name: str,
    *,
    goals: Mapping[str, Any] | None = None,
    total_goal: float = DEFAULT_TOTAL_GOAL,
) -> Profile:
    if not name.strip():
        raise ValidationError(code="empty_name", message="Profile name must not be empty.", field="name")
    profile = Profile(
        name=name,
        goals=validate_goals(goals or {}),
        total_goal=_validate_goal(total_goal, field="total_goal"),
    )
    await repository.insert_profile(conn, profile)
    logger.info("Created profile %s", profile.id, extra={"scimuscle_profile_id": profile.id})
    return profile


async def get_profile(conn: psycopg.AsyncConnection[Any], profile_id: str) -> Profile | None:
    return await repository.fetch_profile(conn, profile_id=profile_id)


async def require_profile(conn: psycopg.AsyncConnection[Any], profile_id: str) -> Profile:
    profile = await repository.fetch_profile(conn, profile_id=profile_id)
    if profile is None:
        raise NotFoundError(
            code="profile_not_found",
            message=f"Profile {profile_id!r} does not exist.",
            field="profile_id",
        )
    return profile


async def list_profiles(conn: psycopg.AsyncConnection[Any]) -> list[Profile]:
    return await repository.fetch_profiles(conn)


async def rename_profile(conn: psycopg.AsyncConnection[Any], profile_id: str, name: str) -> Profile:
    if not name.strip():
        raise ValidationError(code="empty_name", message="Profile name must not be empty.", field="name")
    profile = await require_profile(conn, profile_id)
    await repository.update_profile_name(conn, profile_id=profile_id, name=name)
    return profile.model_copy(update={"name": name})


async def delete_profile(conn: psycopg.AsyncConnection[Any], profile_id: str) -> None:
    """Delete a profile with its workouts, mappings, overrides and unmapped rows."""
    if not await repository.delete_profile(conn, profile_id=profile_id):
        raise NotFoundError(
            code="profile_not_found",
            message=f"Profile {profile_id!r} does not exist.",
            field="profile_id",
        )
    logger.info("Deleted profile %s", profile_id, extra={"scimuscle_profile_id": profile_id})


async def update_goals(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    *,
    goals: Mapping[str, Any] | None = None,
    total_goal: float | None = None,
) -> Profile:
    """Merge per-muscle goals into the profile and optionally replace the total goal."""
    profile = await require_profile(conn, profile_id)
    merged = dict(profile.goals)
    merged.update(validate_goals(goals or {}))
    new_total = (
        _validate_goal(total_goal, field="total_goal") if total_goal is not None else profile.total_goal
    )
    await repository.update_profile_goals(
        conn, profile_id=profile_id, goals=merged, total_goal=new_total
    )
    return profile.model_copy(update={"goals": merged, "total_goal": new_total})


async def update_muscle_group_customization(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    customization: Mapping[str, Any],
) -> Profile:
    """Replace the profile's scientific -> functional group customization."""
    profile = await require_profile(conn, profile_id)
    cleaned = validate_functional_customization(customization)
    await repository.update_profile_customization(
        conn, profile_id=profile_id, customization=dict(cleaned)
    )
    return profile.model_copy(update={"muscle_group_customization": cleaned})


# ---------------------------------------------------------------------------
# Custom muscle group configuration
# ---------------------------------------------------------------------------


def effective_muscle_group_config(profile: Profile) -> EffectiveMuscleGroupConfig:
    if profile.custom_muscle_groups is not None:
        return EffectiveMuscleGroupConfig(config=profile.custom_muscle_groups, is_default=False)
    return EffectiveMuscleGroupConfig(config=DEFAULT_MUSCLE_GROUP_CONFIG, is_default=True)


async def load_muscle_group_config(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
) -> EffectiveMuscleGroupConfig:
    return effective_muscle_group_config(await require_profile(conn, profile_id))


async def save_muscle_group_config(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    config: MuscleGroupConfig,
) -> MuscleGroupConfig:
    result = validate_muscle_group_config(config)
    if not result.valid:
        raise ValidationError(
            code="invalid_muscle_group_config",
            message=f"Invalid muscle group config: {'; '.join(result.errors)}",
            field="custom_muscle_groups",
        )
    await require_profile(conn, profile_id)
    await repository.update_profile_muscle_groups(conn, profile_id=profile_id, config=config)
    return config


async def edit_muscle_group_config(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    edit: Callable[[MuscleGroupConfig], MuscleGroupConfig],
) -> MuscleGroupConfig:
    """Load the effective config, apply a pure edit, save the result.

    Editing the default config saves a custom copy.
    """
    current = await load_muscle_group_config(conn, profile_id)
    updated = edit(current.config)
    return await save_muscle_group_config(conn, profile_id, updated)


async def reset_muscle_group_config(conn: psycopg.AsyncConnection[Any], profile_id: str) -> None:
    await require_profile(conn, profile_id)
    await repository.update_profile_muscle_groups(conn, profile_id=profile_id, config=None)
