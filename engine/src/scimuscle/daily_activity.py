"""Per-day breakdown of a window's workouts for the weekly activity chart."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, tzinfo

from .models import MuscleValues, Workout
from .taxonomy import FUNCTIONAL_GROUPS, FunctionalGroup, ScientificMuscle
from .windows import DateWindow, local_date

DAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class DailyExercise:
    exercise_id: str
    name: str
    sets: int
    muscles_worked: tuple[FunctionalGroup, ...]


@dataclass(frozen=True)
class DailyWorkout:
    id: str
    title: str
    exercises: tuple[DailyExercise, ...]

    @property
    def total_sets(self) -> int:
        return sum(exercise.sets for exercise in self.exercises)


@dataclass(frozen=True)
class DailyActivity:
    date: date
    day_label: str
    workouts: tuple[DailyWorkout, ...] = field(default=())

    @property
    def total_sets(self) -> int:
        return sum(workout.total_sets for workout in self.workouts)

    @property
    def exercises(self) -> list[str]:
        """Distinct exercise names trained that day, first occurrence first."""
        seen: dict[str, None] = {}
        for workout in self.workouts:
            for exercise in workout.exercises:
                seen.setdefault(exercise.name, None)
        return list(seen)

    @property
    def functional_groups(self) -> list[FunctionalGroup]:
        touched = {
            group
            for workout in self.workouts
            for exercise in workout.exercises
            for group in exercise.muscles_worked
        }
        return [group for group in FUNCTIONAL_GROUPS if group in touched]

    def as_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "day_label": self.day_label,
            "total_sets": self.total_sets,
            "exercises": self.exercises,
            "functional_groups": self.functional_groups,
            "workouts": [
                {
                    "id": workout.id,
                    "title": workout.title,
                    "exercises": [
                        {
                            "name": exercise.name,
                            "sets": exercise.sets,
                            "muscles_worked": list(exercise.muscles_worked),
                        }
                        for exercise in workout.exercises
                    ],
                }
                for workout in self.workouts
            ],
        }


def day_label(day: date) -> str:
    return DAY_LABELS[day.weekday()]


def functional_groups_worked(
    muscle_values: MuscleValues | None,
    functional_mapping: Mapping[ScientificMuscle, FunctionalGroup],
) -> tuple[FunctionalGroup, ...]:
    if not muscle_values:
        return ()
    touched = {
        functional_mapping[muscle]
        for muscle, contribution in muscle_values.items()
        if contribution > 0 and muscle in functional_mapping
    }
    return tuple(group for group in FUNCTIONAL_GROUPS if group in touched)


def _summarize_workout(
    workout: Workout,
    exercise_mappings: Mapping[str, MuscleValues],
    functional_mapping: Mapping[ScientificMuscle, FunctionalGroup],
) -> DailyWorkout:
    counts: dict[str, int] = {}
    names: dict[str, str] = {}
    for workout_set in workout.sets:
        if workout_set.is_warmup:
            continue
        counts[workout_set.exercise_id] = counts.get(workout_set.exercise_id, 0) + 1
        names.setdefault(workout_set.exercise_id, workout_set.original_name)

    exercises = tuple(
        DailyExercise(
            exercise_id=exercise_id,
            name=names[exercise_id],
            sets=count,
            muscles_worked=functional_groups_worked(
                exercise_mappings.get(exercise_id), functional_mapping
            ),
        )
        for exercise_id, count in counts.items()
    )
    return DailyWorkout(id=workout.id, title=workout.title, exercises=exercises)


def daily_activity(
    workouts: Iterable[Workout],
    window: DateWindow,
    exercise_mappings: Mapping[str, MuscleValues],
    functional_mapping: Mapping[ScientificMuscle, FunctionalGroup],
    tz: tzinfo,
) -> list[DailyActivity]:
    """One entry per local date in ``window``, empty days included.

    Workouts are bucketed by their date in ``tz``; workouts outside the window
    are ignored.
    """
    by_day: dict[date, list[Workout]] = {}
    for workout in sorted(workouts, key=lambda w: w.date):
        day = local_date(workout.date, tz)
        if window.contains(day):
            by_day.setdefault(day, []).append(workout)

    return [
        DailyActivity(
            date=day,
            day_label=day_label(day),
            workouts=tuple(
                _summarize_workout(workout, exercise_mappings, functional_mapping)
                for workout in by_day.get(day, [])
            ),
        )
        for day in window.days()
    ]
