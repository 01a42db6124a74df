"""Custom muscle grouping: named groups, an ungrouped bucket and a hidden bucket.

Every operation takes a ``MuscleGroupConfig`` and returns a new one. The one
invariant: a scientific muscle occupies at most one placement across all
groups, ``ungrouped`` and ``hidden``. Muscles with no placement are
unassigned and display alongside the ungrouped ones.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal, TypeVar, Union

from .errors import ConsistencyError, ValidationError
from .models import CustomMuscleGroup, MuscleGroupConfig
from .taxonomy import SCIENTIFIC_MUSCLES, ScientificMuscle, is_scientific_muscle

MAX_GROUPS = 8
DEFAULT_GROUP_NAME = "New Group"

T = TypeVar("T")

# Push / Pull / Legs / Core. Arm muscles split into push (triceps) and pull
# (biceps, forearms) rather than getting their own group.
DEFAULT_MUSCLE_GROUP_CONFIG = MuscleGroupConfig(
    groups=(
        CustomMuscleGroup(
            id="default-push",
            name="Push",
            muscles=(
                "Pectoralis Major (Sternal)",
                "Pectoralis Major (Clavicular)",
                "Anterior Deltoid",
                "Lateral Deltoid",
                "Triceps (Lateral/Medial)",
                "Triceps (Long Head)",
            ),
        ),
        CustomMuscleGroup(
            id="default-pull",
            name="Pull",
            muscles=(
                "Latissimus Dorsi",
                "Upper Trapezius",
                "Middle Trapezius",
                "Lower Trapezius",
                "Posterior Deltoid",
                "Biceps Brachii",
                "Erector Spinae",
                "Forearm Flexors",
                "Forearm Extensors",
            ),
        ),
        CustomMuscleGroup(
            id="default-legs",
            name="Legs",
            muscles=(
                "Quadriceps (Vasti)",
                "Quadriceps (RF)",
                "Gluteus Maximus",
                "Gluteus Medius",
                "Hamstrings",
                "Adductors",
                "Gastrocnemius",
                "Soleus",
            ),
        ),
        CustomMuscleGroup(
            id="default-core",
            name="Core",
            muscles=("Rectus Abdominis", "Obliques", "Hip Flexors"),
        ),
    ),
)


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToGroup:
    group_id: str
    type: Literal["group"] = field(default="group", init=False)


@dataclass(frozen=True)
class ToUngrouped:
    type: Literal["ungrouped"] = field(default="ungrouped", init=False)


@dataclass(frozen=True)
class ToHidden:
    type: Literal["hidden"] = field(default="hidden", init=False)


MuscleDestination = Union[ToGroup, ToUngrouped, ToHidden]


def destination_from_dict(payload: dict[str, str]) -> MuscleDestination:
    """Parse ``{"type": "group", "groupId": ...}`` style destinations."""
    kind = payload.get("type")
    if kind == "group":
        group_id = payload.get("group_id") or payload.get("groupId")
        if not group_id:
            raise ValidationError(
                code="invalid_muscle_group_config",
                message="Group destination requires group_id.",
                field="destination.group_id",
            )
        return ToGroup(group_id=group_id)
    if kind == "ungrouped":
        return ToUngrouped()
    if kind == "hidden":
        return ToHidden()
    raise ValidationError(
        code="invalid_muscle_group_config",
        message=f"Unknown destination type: {kind!r}",
        field="destination.type",
        docs_hint="Destination type must be one of group, ungrouped, hidden.",
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MuscleGroupValidationResult:
    valid: bool
    errors: tuple[str, ...] = ()


def _all_placed(config: MuscleGroupConfig) -> list[str]:
    placed: list[str] = []
    for group in config.groups:
        placed.extend(group.muscles)
    placed.extend(config.ungrouped)
    placed.extend(config.hidden)
    return placed


def validate_muscle_group_config(
    config: MuscleGroupConfig,
    *,
    require_complete: bool = False,
) -> MuscleGroupValidationResult:
    errors: list[str] = []

    if len(config.groups) > MAX_GROUPS:
        errors.append(f"Too many groups: {len(config.groups)} (max {MAX_GROUPS})")

    group_ids = Counter(group.id for group in config.groups)
    duplicate_ids = sorted(group_id for group_id, count in group_ids.items() if count > 1)
    if duplicate_ids:
        errors.append(f"Duplicate group ids: {', '.join(duplicate_ids)}")

    placed = _all_placed(config)
    counts = Counter(placed)
    duplicates = [muscle for muscle in counts if counts[muscle] > 1]
    if duplicates:
        errors.append(f"Duplicate muscles found: {', '.join(duplicates)}")

    invalid = [muscle for muscle in placed if not is_scientific_muscle(muscle)]
    if invalid:
        errors.append(f"Invalid muscles: {', '.join(invalid)}")

    if require_complete:
        missing = [muscle for muscle in SCIENTIFIC_MUSCLES if muscle not in counts]
        if missing:
            errors.append(f"Missing muscles: {', '.join(missing)}")

    return MuscleGroupValidationResult(valid=not errors, errors=tuple(errors))


def assert_single_placement(config: MuscleGroupConfig) -> None:
    counts = Counter(_all_placed(config))
    duplicates = [muscle for muscle in counts if counts[muscle] > 1]
    if duplicates:
        raise ConsistencyError(
            code="duplicate_placement",
            message=f"Muscles placed more than once: {', '.join(duplicates)}",
            field="muscle_group_config",
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def placement_of(config: MuscleGroupConfig, muscle: ScientificMuscle) -> MuscleDestination | None:
    """Where ``muscle`` currently sits, or ``None`` when unassigned."""
    for group in config.groups:
        if muscle in group.muscles:
            return ToGroup(group_id=group.id)
    if muscle in config.ungrouped:
        return ToUngrouped()
    if muscle in config.hidden:
        return ToHidden()
    return None


def unassigned_muscles(config: MuscleGroupConfig) -> list[ScientificMuscle]:
    placed = set(_all_placed(config))
    return [muscle for muscle in SCIENTIFIC_MUSCLES if muscle not in placed]


def displayed_ungrouped(config: MuscleGroupConfig) -> list[ScientificMuscle]:
    """Explicitly ungrouped muscles followed by unassigned ones."""
    return list(config.ungrouped) + unassigned_muscles(config)


def muscles_available_for_ungrouped(config: MuscleGroupConfig) -> list[ScientificMuscle]:
    placed = set(_all_placed(config))
    return [
        muscle
        for muscle in SCIENTIFIC_MUSCLES
        if muscle in config.hidden or muscle not in placed
    ]


def muscles_available_for_group(config: MuscleGroupConfig, group_id: str) -> list[ScientificMuscle]:
    """Muscles that can be added to ``group_id`` without leaving another group."""
    in_other_groups = {
        muscle
        for group in config.groups
        if group.id != group_id
        for muscle in group.muscles
    }
    placed = set(_all_placed(config))
    return [
        muscle
        for muscle in SCIENTIFIC_MUSCLES
        if muscle not in in_other_groups
        and (muscle in config.ungrouped or muscle in config.hidden or muscle not in placed)
    ]


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def _require_group_index(config: MuscleGroupConfig, group_id: str) -> int:
    for index, group in enumerate(config.groups):
        if group.id == group_id:
            return index
    raise ConsistencyError(
        code="unknown_group",
        message=f'Group with ID "{group_id}" not found',
        field="group_id",
    )


def move_muscle(
    config: MuscleGroupConfig,
    muscle: ScientificMuscle,
    destination: MuscleDestination,
) -> MuscleGroupConfig:
    """Remove ``muscle`` from wherever it is, then append it to ``destination``."""
    if not is_scientific_muscle(muscle):
        raise ValidationError(
            code="unknown_muscle",
            message=f"Unknown scientific muscle: {muscle!r}",
            field="muscle",
        )

    target_index = None
    if isinstance(destination, ToGroup):
        target_index = _require_group_index(config, destination.group_id)

    groups = [
        group.model_copy(update={"muscles": tuple(m for m in group.muscles if m != muscle)})
        for group in config.groups
    ]
    ungrouped = tuple(m for m in config.ungrouped if m != muscle)
    hidden = tuple(m for m in config.hidden if m != muscle)

    if isinstance(destination, ToGroup):
        assert target_index is not None
        target = groups[target_index]
        groups[target_index] = target.model_copy(update={"muscles": (*target.muscles, muscle)})
    elif isinstance(destination, ToUngrouped):
        ungrouped = (*ungrouped, muscle)
    else:
        hidden = (*hidden, muscle)

    return MuscleGroupConfig(groups=tuple(groups), ungrouped=ungrouped, hidden=hidden)


def add_group(
    config: MuscleGroupConfig,
    name: str = DEFAULT_GROUP_NAME,
    *,
    group_id: str | None = None,
) -> MuscleGroupConfig:
    if len(config.groups) >= MAX_GROUPS:
        raise ValidationError(
            code="group_limit_reached",
            message=f"Cannot add group: maximum of {MAX_GROUPS} groups reached.",
            field="groups",
            docs_hint="Delete or merge an existing group first.",
        )
    new_id = group_id or str(uuid.uuid4())
    if config.group_by_id(new_id) is not None:
        raise ConsistencyError(
            code="duplicate_group_id",
            message=f"Group id {new_id!r} already exists.",
            field="group_id",
        )
    group = CustomMuscleGroup(id=new_id, name=name.strip() or DEFAULT_GROUP_NAME)
    return config.model_copy(update={"groups": (*config.groups, group)})


def rename_group(config: MuscleGroupConfig, group_id: str, name: str) -> MuscleGroupConfig:
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError(code="empty_name", message="Group name must not be empty.", field="name")
    index = _require_group_index(config, group_id)
    groups = list(config.groups)
    groups[index] = groups[index].model_copy(update={"name": cleaned})
    return config.model_copy(update={"groups": tuple(groups)})


def delete_group(config: MuscleGroupConfig, group_id: str) -> MuscleGroupConfig:
    """Drop a group; its muscles move to the end of ``ungrouped`` in order."""
    index = _require_group_index(config, group_id)
    removed = config.groups[index]
    groups = config.groups[:index] + config.groups[index + 1 :]
    return MuscleGroupConfig(
        groups=groups,
        ungrouped=(*config.ungrouped, *removed.muscles),
        hidden=config.hidden,
    )


def reorder(items: Sequence[T], old_index: int, new_index: int) -> tuple[T, ...]:
    """Move the item at ``old_index`` so it ends up at ``new_index``."""
    size = len(items)
    for label, index in (("old_index", old_index), ("new_index", new_index)):
        if not 0 <= index < size:
            raise ValidationError(
                code="index_out_of_range",
                message=f"{label} {index} out of range for {size} items.",
                field=label,
            )
    result = list(items)
    item = result.pop(old_index)
    result.insert(new_index, item)
    return tuple(result)


def reorder_groups(config: MuscleGroupConfig, old_index: int, new_index: int) -> MuscleGroupConfig:
    return config.model_copy(update={"groups": reorder(config.groups, old_index, new_index)})


def reorder_muscles(
    config: MuscleGroupConfig,
    group_id: str,
    old_index: int,
    new_index: int,
) -> MuscleGroupConfig:
    index = _require_group_index(config, group_id)
    groups = list(config.groups)
    group = groups[index]
    groups[index] = group.model_copy(
        update={"muscles": reorder(group.muscles, old_index, new_index)}
    )
    return config.model_copy(update={"groups": tuple(groups)})
