"""Domain models for workouts, profiles, overrides and exercise mappings.

All models are pydantic v2. Records that the engine treats as values
(sets, muscle group configs, overrides) are frozen so resolution and
aggregation can never mutate shared state.
"""

from __future__ import annotations

import math
import uuid
from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConsistencyError, ValidationError
from .taxonomy import (
    DEFAULT_TOTAL_GOAL,
    FunctionalGroup,
    ScientificMuscle,
    is_functional_group,
    is_scientific_muscle,
)

SetType = Literal["normal", "warmup", "failure", "drop"]
MuscleValues = dict[ScientificMuscle, float]


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


def validate_muscle_values(values: Mapping[str, Any], *, field: str = "muscle_values") -> MuscleValues:
    """Check a muscle -> contribution mapping and return a clean copy.

    Every key must be a scientific muscle and every weight a finite number in
    [0, 1].
    """
    if not isinstance(values, Mapping):
        raise ValidationError(
            code="contribution_out_of_range",
            message=f"{field} must be a mapping of muscle to contribution.",
            field=field,
        )
    cleaned: MuscleValues = {}
    for muscle, raw in values.items():
        if not is_scientific_muscle(muscle):
            raise ValidationError(
                code="unknown_muscle",
                message=f"Unknown scientific muscle: {muscle!r}",
                field=f"{field}.{muscle}",
                docs_hint="Use one of the 26 scientific muscle names from the taxonomy.",
            )
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValidationError(
                code="contribution_out_of_range",
                message=f"Contribution for {muscle} must be a number, got {raw!r}",
                field=f"{field}.{muscle}",
            )
        weight = float(raw)
        if math.isnan(weight) or weight < 0.0 or weight > 1.0:
            raise ValidationError(
                code="contribution_out_of_range",
                message=f"Contribution for {muscle} must be within [0, 1], got {raw!r}",
                field=f"{field}.{muscle}",
                docs_hint="Contribution weights are fractions of a set between 0.0 and 1.0.",
            )
        cleaned[muscle] = weight
    return cleaned


def _require_name(value: str, *, field_name: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError(f"{field_name} must not be empty")
    return normalized


class _DomainModel(BaseModel):
    """Direct construction re-raises the engine's ValidationError.

    pydantic wraps every ValueError a validator raises, ours included; the
    original is kept in the error context and surfaced again here.
    """

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as exc:
            for detail in exc.errors():
                original = detail.get("ctx", {}).get("error")
                if isinstance(original, ValidationError):
                    raise original from exc
            raise


# ---------------------------------------------------------------------------
# Workouts
# ---------------------------------------------------------------------------


class WorkoutSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    exercise_id: str
    original_name: str
    set_type: SetType = "normal"
    weight: float = 0.0
    reps: int = 0
    rpe: float | None = None

    @property
    def is_warmup(self) -> bool:
        return self.set_type == "warmup"


class Workout(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    profile_id: str
    date: datetime
    title: str = ""
    sets: tuple[WorkoutSet, ...] = ()

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        return _require_name(value, field_name="id")


# ---------------------------------------------------------------------------
# Profiles and muscle group configuration
# ---------------------------------------------------------------------------


class CustomMuscleGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    muscles: tuple[ScientificMuscle, ...] = ()


class MuscleGroupConfig(BaseModel):
    """Custom grouping of muscles into named buckets plus ungrouped/hidden.

    A muscle appears in at most one of: some group, ``ungrouped``, ``hidden``.
    Muscles in none of them are unassigned and display as ungrouped.
    """

    model_config = ConfigDict(frozen=True)

    groups: tuple[CustomMuscleGroup, ...] = ()
    ungrouped: tuple[ScientificMuscle, ...] = ()
    hidden: tuple[ScientificMuscle, ...] = ()

    def group_by_id(self, group_id: str) -> CustomMuscleGroup | None:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    goals: dict[ScientificMuscle, float] = Field(default_factory=dict)
    total_goal: float = DEFAULT_TOTAL_GOAL
    muscle_group_customization: dict[ScientificMuscle, FunctionalGroup] = Field(
        default_factory=dict
    )
    custom_muscle_groups: MuscleGroupConfig | None = None
    api_key: str | None = None
    last_sync_timestamp: int | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _require_name(value, field_name="name")

    @field_validator("goals")
    @classmethod
    def validate_goals(cls, value: dict[ScientificMuscle, float]) -> dict[ScientificMuscle, float]:
        for muscle, goal in value.items():
            if goal < 0:
                raise ValueError(f"goal for {muscle} must be >= 0")
        return value

    @field_validator("total_goal")
    @classmethod
    def validate_total_goal(cls, value: float) -> float:
        if value < 0:
            raise ValueError("total_goal must be >= 0")
        return value


# ---------------------------------------------------------------------------
# Overrides of the shared default tables
# ---------------------------------------------------------------------------


class DefaultExerciseOverride(_DomainModel):
    """Profile-scoped replacement for one exercise's default muscle values.

    The custom values stand in for the defaults entirely; nothing is merged.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    profile_id: str
    exercise_name: str
    custom_muscle_values: MuscleValues
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("custom_muscle_values", mode="before")
    @classmethod
    def validate_values(cls, value: Any) -> MuscleValues:
        return validate_muscle_values(value, field="custom_muscle_values")


class DefaultNameMappingOverride(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    profile_id: str
    gym_name: str
    canonical_name: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# User-authored exercise mappings
# ---------------------------------------------------------------------------


class CanonicalResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["canonical"] = "canonical"
    canonical_exercise_id: str

    @field_validator("canonical_exercise_id")
    @classmethod
    def validate_canonical_id(cls, value: str) -> str:
        return _require_name(value, field_name="canonical_exercise_id")


class CustomResolution(_DomainModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["custom"] = "custom"
    muscle_values: MuscleValues

    @field_validator("muscle_values", mode="before")
    @classmethod
    def validate_values(cls, value: Any) -> MuscleValues:
        return validate_muscle_values(value, field="muscle_values")


class IgnoredResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["ignored"] = "ignored"


MappingResolution = Annotated[
    Union[CanonicalResolution, CustomResolution, IgnoredResolution],
    Field(discriminator="kind"),
]


class ExerciseMapping(_DomainModel):
    """How a profile resolves one unrecognized exercise pattern."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    profile_id: str
    original_pattern: str
    resolution: MappingResolution
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def canonical_exercise_id(self) -> str | None:
        if isinstance(self.resolution, CanonicalResolution):
            return self.resolution.canonical_exercise_id
        return None

    @property
    def custom_muscle_values(self) -> MuscleValues | None:
        if isinstance(self.resolution, CustomResolution):
            return dict(self.resolution.muscle_values)
        return None

    @property
    def is_ignored(self) -> bool:
        return isinstance(self.resolution, IgnoredResolution)

    @classmethod
    def from_columns(
        cls,
        *,
        canonical_exercise_id: str | None,
        custom_muscle_values: Mapping[str, float] | None,
        is_ignored: bool,
        **fields: Any,
    ) -> "ExerciseMapping":
        """Rebuild a mapping from the flat stored representation.

        Exactly one of the three strategies must be set.
        """
        strategies = [
            canonical_exercise_id is not None,
            custom_muscle_values is not None,
            bool(is_ignored),
        ]
        if sum(strategies) != 1:
            raise ConsistencyError(
                code="malformed_mapping",
                message=(
                    "Exercise mapping must set exactly one of canonical_exercise_id, "
                    "custom_muscle_values, is_ignored."
                ),
                field="resolution",
            )
        resolution: CanonicalResolution | CustomResolution | IgnoredResolution
        if canonical_exercise_id is not None:
            resolution = CanonicalResolution(canonical_exercise_id=canonical_exercise_id)
        elif custom_muscle_values is not None:
            resolution = CustomResolution(muscle_values=dict(custom_muscle_values))
        else:
            resolution = IgnoredResolution()
        return cls(resolution=resolution, **fields)


class UnmappedExercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    profile_id: str
    original_name: str
    normalized_name: str
    first_seen_at: datetime = Field(default_factory=utcnow)
    occurrence_count: int = 1

    @model_validator(mode="after")
    def validate_count(self) -> "UnmappedExercise":
        if self.occurrence_count < 1:
            raise ValueError("occurrence_count must be >= 1")
        return self


def validate_functional_customization(
    values: Mapping[str, Any],
) -> dict[ScientificMuscle, FunctionalGroup]:
    cleaned: dict[ScientificMuscle, FunctionalGroup] = {}
    for muscle, group in values.items():
        if not is_scientific_muscle(muscle):
            raise ValidationError(
                code="unknown_muscle",
                message=f"Unknown scientific muscle: {muscle!r}",
                field=f"muscle_group_customization.{muscle}",
            )
        if not is_functional_group(group):
            raise ValidationError(
                code="unknown_functional_group",
                message=f"Unknown functional group: {group!r}",
                field=f"muscle_group_customization.{muscle}",
            )
        cleaned[muscle] = group
    return cleaned
