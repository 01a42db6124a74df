"""Fractional set-volume aggregation at scientific and functional level.

A set contributes its mapping's weight to every muscle the mapping names, so
one bench press set adds 1.0 to the sternal pecs and 0.5 to the triceps.
Total volume is different: it is the literal number of working sets.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .models import MuscleValues, Workout, WorkoutSet
from .taxonomy import (
    DEFAULT_MUSCLE_GOAL,
    FUNCTIONAL_GROUPS,
    SCIENTIFIC_MUSCLES,
    FunctionalGroup,
    ScientificMuscle,
)


@dataclass(frozen=True)
class VolumeStatItem:
    name: str
    volume: float
    goal: float
    percentage: float

    def as_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "volume": round(self.volume, 4),
            "goal": self.goal,
            "percentage": round(self.percentage, 2),
        }


@dataclass(frozen=True)
class VolumeStats:
    items: tuple[VolumeStatItem, ...]
    total_volume: int
    total_goal: float

    def by_name(self) -> dict[str, VolumeStatItem]:
        return {item.name: item for item in self.items}

    def as_dict(self) -> dict[str, object]:
        return {
            "items": [item.as_dict() for item in self.items],
            "total_volume": self.total_volume,
            "total_goal": self.total_goal,
        }


def working_sets(workouts: Iterable[Workout]) -> list[WorkoutSet]:
    """Flatten workouts into their non-warmup sets."""
    return [s for workout in workouts for s in workout.sets if not s.is_warmup]


def calculate_muscle_volume(
    sets: Iterable[WorkoutSet],
    exercise_mappings: Mapping[str, MuscleValues],
) -> dict[ScientificMuscle, float]:
    """Sum contribution weights per muscle. Warmups and unmapped sets add nothing."""
    volume: dict[ScientificMuscle, float] = {}
    for workout_set in sets:
        if workout_set.is_warmup:
            continue
        mapping = exercise_mappings.get(workout_set.exercise_id)
        if not mapping:
            continue
        for muscle, contribution in mapping.items():
            volume[muscle] = volume.get(muscle, 0.0) + contribution
    return volume


def aggregate_to_functional_groups(
    scientific_volume: Mapping[ScientificMuscle, float],
    functional_mapping: Mapping[ScientificMuscle, FunctionalGroup],
) -> dict[FunctionalGroup, float]:
    grouped: dict[FunctionalGroup, float] = {}
    for muscle, volume in scientific_volume.items():
        group = functional_mapping.get(muscle)
        if group is not None:
            grouped[group] = grouped.get(group, 0.0) + volume
    return grouped


def percentage_of_goal(volume: float, goal: float) -> float:
    return volume / goal * 100 if goal > 0 else 0.0


def muscle_goal(goals: Mapping[ScientificMuscle, float], muscle: ScientificMuscle) -> float:
    return goals.get(muscle, DEFAULT_MUSCLE_GOAL)


def functional_group_goals(
    goals: Mapping[ScientificMuscle, float],
    functional_mapping: Mapping[ScientificMuscle, FunctionalGroup],
) -> dict[FunctionalGroup, float]:
    """Sum of member muscle goals per group under ``functional_mapping``.

    Groups with no members are absent from the result.
    """
    group_goals: dict[FunctionalGroup, float] = {}
    for muscle in SCIENTIFIC_MUSCLES:
        group = functional_mapping.get(muscle)
        if group is None:
            continue
        group_goals[group] = group_goals.get(group, 0.0) + muscle_goal(goals, muscle)
    return group_goals


def scientific_muscle_volume(
    workouts: Iterable[Workout],
    exercise_mappings: Mapping[str, MuscleValues],
    goals: Mapping[ScientificMuscle, float],
    *,
    total_goal: float,
) -> VolumeStats:
    sets = working_sets(workouts)
    volume = calculate_muscle_volume(sets, exercise_mappings)
    items = []
    for muscle in SCIENTIFIC_MUSCLES:
        muscle_volume = volume.get(muscle, 0.0)
        goal = muscle_goal(goals, muscle)
        items.append(
            VolumeStatItem(
                name=muscle,
                volume=muscle_volume,
                goal=goal,
                percentage=percentage_of_goal(muscle_volume, goal),
            )
        )
    return VolumeStats(items=tuple(items), total_volume=len(sets), total_goal=total_goal)


def functional_group_volume(
    workouts: Iterable[Workout],
    exercise_mappings: Mapping[str, MuscleValues],
    goals: Mapping[ScientificMuscle, float],
    functional_mapping: Mapping[ScientificMuscle, FunctionalGroup],
    *,
    total_goal: float,
) -> VolumeStats:
    sets = working_sets(workouts)
    group_volume = aggregate_to_functional_groups(
        calculate_muscle_volume(sets, exercise_mappings), functional_mapping
    )
    group_goals = functional_group_goals(goals, functional_mapping)
    items = []
    for group in FUNCTIONAL_GROUPS:
        volume = group_volume.get(group, 0.0)
        # A group emptied by customization has no goal to measure against.
        goal = group_goals.get(group, 0.0)
        items.append(
            VolumeStatItem(
                name=group,
                volume=volume,
                goal=goal,
                percentage=percentage_of_goal(volume, goal),
            )
        )
    return VolumeStats(items=tuple(items), total_volume=len(sets), total_goal=total_goal)


def functional_group_breakdown(
    scientific: VolumeStats,
    group: FunctionalGroup,
    functional_mapping: Mapping[ScientificMuscle, FunctionalGroup],
) -> list[VolumeStatItem]:
    """The scientific items whose muscle belongs to ``group``."""
    members = {muscle for muscle, owner in functional_mapping.items() if owner == group}
    return [item for item in scientific.items if item.name in members]
