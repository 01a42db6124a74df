"""Muscle taxonomy: scientific muscles, functional groups, default grouping.

Scientific muscles are the 26 anatomical units every exercise mapping is
expressed in. Functional groups are the coarser buckets shown on dashboards.
Both vocabularies are process-wide constants; per-profile customization of the
scientific -> functional mapping lives on the profile, never here.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Literal, Mapping, get_args

ScientificMuscle = Literal[
    # Back
    "Latissimus Dorsi",
    "Middle Trapezius",
    "Upper Trapezius",
    "Lower Trapezius",
    "Erector Spinae",
    # Shoulders
    "Posterior Deltoid",
    "Anterior Deltoid",
    "Lateral Deltoid",
    # Arms
    "Biceps Brachii",
    "Triceps (Lateral/Medial)",
    "Triceps (Long Head)",
    # Legs
    "Quadriceps (Vasti)",
    "Quadriceps (RF)",
    "Gluteus Maximus",
    "Gluteus Medius",
    "Hamstrings",
    "Adductors",
    "Gastrocnemius",
    "Soleus",
    # Chest
    "Pectoralis Major (Sternal)",
    "Pectoralis Major (Clavicular)",
    # Core
    "Rectus Abdominis",
    "Obliques",
    "Hip Flexors",
    # Forearms
    "Forearm Flexors",
    "Forearm Extensors",
]

FunctionalGroup = Literal[
    "Chest",
    "Upper Chest",
    "Lats",
    "Traps",
    "Lower Back",
    "Front Delts",
    "Side Delts",
    "Rear Delts",
    "Triceps",
    "Biceps",
    "Quads",
    "Hamstrings",
    "Glutes",
    "Calves",
    "Core",
    "Forearms",
    "Adductors",
]

SCIENTIFIC_MUSCLES: tuple[ScientificMuscle, ...] = get_args(ScientificMuscle)
FUNCTIONAL_GROUPS: tuple[FunctionalGroup, ...] = get_args(FunctionalGroup)

_SCIENTIFIC_MUSCLE_SET = frozenset(SCIENTIFIC_MUSCLES)
_FUNCTIONAL_GROUP_SET = frozenset(FUNCTIONAL_GROUPS)

DEFAULT_SCIENTIFIC_TO_FUNCTIONAL: Mapping[ScientificMuscle, FunctionalGroup] = MappingProxyType(
    {
        # Back
        "Latissimus Dorsi": "Lats",
        "Middle Trapezius": "Traps",
        "Upper Trapezius": "Traps",
        "Lower Trapezius": "Traps",
        "Erector Spinae": "Lower Back",
        # Shoulders
        "Posterior Deltoid": "Rear Delts",
        "Anterior Deltoid": "Front Delts",
        "Lateral Deltoid": "Side Delts",
        # Arms
        "Biceps Brachii": "Biceps",
        "Triceps (Lateral/Medial)": "Triceps",
        "Triceps (Long Head)": "Triceps",
        # Legs
        "Quadriceps (Vasti)": "Quads",
        "Quadriceps (RF)": "Quads",
        "Gluteus Maximus": "Glutes",
        "Gluteus Medius": "Glutes",
        "Hamstrings": "Hamstrings",
        "Adductors": "Adductors",
        "Gastrocnemius": "Calves",
        "Soleus": "Calves",
        # Chest
        "Pectoralis Major (Sternal)": "Chest",
        "Pectoralis Major (Clavicular)": "Upper Chest",
        # Core
        "Rectus Abdominis": "Core",
        "Obliques": "Core",
        "Hip Flexors": "Core",
        # Forearms
        "Forearm Flexors": "Forearms",
        "Forearm Extensors": "Forearms",
    }
)

# Weekly set goals used when a profile has not set its own.
DEFAULT_MUSCLE_GOAL = 20
DEFAULT_TOTAL_GOAL = 150

UIMuscleGroup = Literal["Back", "Chest", "Shoulders", "Arms", "Legs", "Core"]

# Editor sections for muscle pickers. Every scientific muscle appears once.
UI_MUSCLE_GROUPS: tuple[tuple[UIMuscleGroup, tuple[ScientificMuscle, ...]], ...] = (
    (
        "Back",
        (
            "Latissimus Dorsi",
            "Upper Trapezius",
            "Middle Trapezius",
            "Lower Trapezius",
            "Erector Spinae",
        ),
    ),
    ("Chest", ("Pectoralis Major (Sternal)", "Pectoralis Major (Clavicular)")),
    ("Shoulders", ("Anterior Deltoid", "Lateral Deltoid", "Posterior Deltoid")),
    (
        "Arms",
        (
            "Biceps Brachii",
            "Triceps (Lateral/Medial)",
            "Triceps (Long Head)",
            "Forearm Flexors",
            "Forearm Extensors",
        ),
    ),
    (
        "Legs",
        (
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
    ("Core", ("Rectus Abdominis", "Obliques", "Hip Flexors")),
)


def is_scientific_muscle(value: object) -> bool:
    return isinstance(value, str) and value in _SCIENTIFIC_MUSCLE_SET


def is_functional_group(value: object) -> bool:
    return isinstance(value, str) and value in _FUNCTIONAL_GROUP_SET


def muscles_in_default_group(group: FunctionalGroup) -> tuple[ScientificMuscle, ...]:
    """Scientific muscles the default taxonomy places in ``group``."""
    return tuple(
        muscle
        for muscle in SCIENTIFIC_MUSCLES
        if DEFAULT_SCIENTIFIC_TO_FUNCTIONAL[muscle] == group
    )


def taxonomy_v1() -> dict[str, object]:
    return {
        "schema_version": "muscle_taxonomy.v1",
        "scientific_muscles": list(SCIENTIFIC_MUSCLES),
        "functional_groups": list(FUNCTIONAL_GROUPS),
        "default_scientific_to_functional": dict(DEFAULT_SCIENTIFIC_TO_FUNCTIONAL),
        "default_muscle_goal": DEFAULT_MUSCLE_GOAL,
        "default_total_goal": DEFAULT_TOTAL_GOAL,
    }
