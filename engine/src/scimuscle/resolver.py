"""Layered default + override resolution.

Three resolutions, all pure:

- exercise muscle values: profile override (verbatim) -> default table -> None
- gym name canonicalization: profile override -> default table -> None
- scientific muscle -> functional group: profile customization -> default (total)

The batch variants index the override list once so import-time resolution of
hundreds of sets stays linear.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .default_tables import DefaultMappingTables, get_default_tables
from .models import (
    CanonicalResolution,
    CustomResolution,
    DefaultExerciseOverride,
    DefaultNameMappingOverride,
    ExerciseMapping,
    MuscleValues,
)
from .normalization import normalize_id
from .taxonomy import (
    DEFAULT_SCIENTIFIC_TO_FUNCTIONAL,
    SCIENTIFIC_MUSCLES,
    FunctionalGroup,
    ScientificMuscle,
)

FunctionalCustomization = Mapping[ScientificMuscle, FunctionalGroup]


def _tables(tables: DefaultMappingTables | None) -> DefaultMappingTables:
    return tables if tables is not None else get_default_tables()


# ---------------------------------------------------------------------------
# Exercise muscle values
# ---------------------------------------------------------------------------


def get_default_exercise_muscle_values(
    exercise_name: str,
    *,
    tables: DefaultMappingTables | None = None,
) -> MuscleValues | None:
    return _tables(tables).muscle_values(exercise_name)


def resolve_exercise_muscle_values(
    exercise_name: str,
    override: DefaultExerciseOverride | None,
    *,
    tables: DefaultMappingTables | None = None,
) -> MuscleValues | None:
    """Effective muscle values for an exercise.

    An override replaces the default outright: muscles it does not mention
    contribute nothing, even if the default table lists them.
    """
    if override is not None:
        return dict(override.custom_muscle_values)
    return get_default_exercise_muscle_values(exercise_name, tables=tables)


def batch_resolve_exercise_muscle_values(
    exercise_names: Iterable[str],
    overrides: Iterable[DefaultExerciseOverride],
    *,
    tables: DefaultMappingTables | None = None,
) -> dict[str, MuscleValues]:
    resolved_tables = _tables(tables)
    override_index = {override.exercise_name: override for override in overrides}
    result: dict[str, MuscleValues] = {}
    for name in exercise_names:
        values = resolve_exercise_muscle_values(
            name, override_index.get(name), tables=resolved_tables
        )
        if values is not None:
            result[name] = values
    return result


# ---------------------------------------------------------------------------
# Gym name -> canonical name
# ---------------------------------------------------------------------------


def get_default_canonical_name(
    gym_name: str,
    *,
    tables: DefaultMappingTables | None = None,
) -> str | None:
    return _tables(tables).name_mappings.get(gym_name)


def resolve_canonical_name(
    gym_name: str,
    override: DefaultNameMappingOverride | None,
    *,
    tables: DefaultMappingTables | None = None,
) -> str | None:
    if override is not None:
        return override.canonical_name
    return get_default_canonical_name(gym_name, tables=tables)


def batch_resolve_canonical_names(
    gym_names: Iterable[str],
    overrides: Iterable[DefaultNameMappingOverride],
    *,
    tables: DefaultMappingTables | None = None,
) -> dict[str, str]:
    resolved_tables = _tables(tables)
    override_index = {override.gym_name: override for override in overrides}
    result: dict[str, str] = {}
    for gym_name in gym_names:
        canonical = resolve_canonical_name(
            gym_name, override_index.get(gym_name), tables=resolved_tables
        )
        if canonical is not None:
            result[gym_name] = canonical
    return result


# ---------------------------------------------------------------------------
# Scientific muscle -> functional group
# ---------------------------------------------------------------------------


def get_default_functional_group(muscle: ScientificMuscle) -> FunctionalGroup:
    return DEFAULT_SCIENTIFIC_TO_FUNCTIONAL[muscle]


def resolve_functional_group(
    muscle: ScientificMuscle,
    customization: FunctionalCustomization | None = None,
) -> FunctionalGroup:
    if customization:
        group = customization.get(muscle)
        if group is not None:
            return group
    return DEFAULT_SCIENTIFIC_TO_FUNCTIONAL[muscle]


def effective_functional_mapping(
    customization: FunctionalCustomization | None = None,
) -> dict[ScientificMuscle, FunctionalGroup]:
    """Full scientific -> functional map with the profile's customization applied."""
    return {muscle: resolve_functional_group(muscle, customization) for muscle in SCIENTIFIC_MUSCLES}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def is_default_exercise(exercise_name: str, *, tables: DefaultMappingTables | None = None) -> bool:
    return exercise_name in _tables(tables).exercise_muscles


def has_default_gym_name_mapping(gym_name: str, *, tables: DefaultMappingTables | None = None) -> bool:
    return get_default_canonical_name(gym_name, tables=tables) is not None


def all_default_exercise_names(*, tables: DefaultMappingTables | None = None) -> list[str]:
    return _tables(tables).exercise_names()


def all_default_gym_name_mappings(*, tables: DefaultMappingTables | None = None) -> dict[str, str]:
    return dict(_tables(tables).name_mappings)


# ---------------------------------------------------------------------------
# Exercise-id keyed mappings for volume aggregation
# ---------------------------------------------------------------------------


def build_exercise_id_mappings(
    *,
    tables: DefaultMappingTables | None = None,
    overrides: Iterable[DefaultExerciseOverride] = (),
    exercise_mappings: Iterable[ExerciseMapping] = (),
) -> dict[str, MuscleValues]:
    """Normalized exercise id -> effective muscle values for one profile.

    Layers, later wins:
    1. default table, keyed by ``normalize_id(canonical name)``
    2. the profile's default-exercise overrides
    3. the profile's user mappings for unrecognized patterns (canonical ->
       that exercise's effective values, custom -> its weights, ignored ->
       empty mapping)
    """
    resolved_tables = _tables(tables)
    override_list = list(overrides)
    names = resolved_tables.exercise_names() + [
        override.exercise_name
        for override in override_list
        if override.exercise_name not in resolved_tables.exercise_muscles
    ]
    by_name = batch_resolve_exercise_muscle_values(names, override_list, tables=resolved_tables)

    mappings: dict[str, MuscleValues] = {}
    for name, values in by_name.items():
        mappings[normalize_id(name)] = values

    # Canonical targets resolve against layers 1-2 only; patterns never chain.
    canonical = dict(mappings)
    for mapping in exercise_mappings:
        resolution = mapping.resolution
        if isinstance(resolution, CanonicalResolution):
            target = canonical.get(resolution.canonical_exercise_id)
            mappings[mapping.original_pattern] = dict(target) if target is not None else {}
        elif isinstance(resolution, CustomResolution):
            mappings[mapping.original_pattern] = dict(resolution.muscle_values)
        else:
            mappings[mapping.original_pattern] = {}
    return mappings
