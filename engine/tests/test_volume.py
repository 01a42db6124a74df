from __future__ import annotations

import pytest
from conftest import make_set, make_workout
from hypothesis import given, settings
from hypothesis import strategies as st

from scimuscle.resolver import build_exercise_id_mappings, effective_functional_mapping
from scimuscle.taxonomy import DEFAULT_SCIENTIFIC_TO_FUNCTIONAL, FUNCTIONAL_GROUPS, SCIENTIFIC_MUSCLES
from scimuscle.volume import (
    aggregate_to_functional_groups,
    calculate_muscle_volume,
    functional_group_breakdown,
    functional_group_goals,
    functional_group_volume,
    percentage_of_goal,
    scientific_muscle_volume,
    working_sets,
)

MAPPINGS = {
    "bench-press": {
        "Pectoralis Major (Sternal)": 1.0,
        "Pectoralis Major (Clavicular)": 0.5,
        "Anterior Deltoid": 0.5,
        "Triceps (Lateral/Medial)": 0.5,
        "Triceps (Long Head)": 0.25,
    },
    "pull-up": {"Latissimus Dorsi": 1.0, "Biceps Brachii": 0.4},
    "lateral-raise": {"Lateral Deltoid": 1.0},
    "stretching": {},
}


def _week():
    return [
        make_workout(
            [
                make_set("Bench Press", "warmup"),
                make_set("Bench Press"),
                make_set("Bench Press"),
                make_set("Bench Press", "failure"),
            ]
        )
    ]


class TestScientificVolume:
    def test_three_working_bench_sets(self) -> None:
        stats = scientific_muscle_volume(_week(), MAPPINGS, {}, total_goal=150)
        items = stats.by_name()
        assert items["Pectoralis Major (Sternal)"].volume == pytest.approx(3.0)
        assert items["Triceps (Lateral/Medial)"].volume == pytest.approx(1.5)
        assert items["Triceps (Long Head)"].volume == pytest.approx(0.75)
        assert items["Pectoralis Major (Sternal)"].percentage == pytest.approx(15.0)
        assert stats.total_volume == 3
        assert stats.total_goal == 150

    def test_one_item_per_muscle_in_taxonomy_order(self) -> None:
        stats = scientific_muscle_volume([], MAPPINGS, {}, total_goal=150)
        assert [item.name for item in stats.items] == list(SCIENTIFIC_MUSCLES)
        assert all(item.volume == 0 and item.goal == 20 for item in stats.items)

    def test_profile_goal_used(self) -> None:
        stats = scientific_muscle_volume(
            _week(), MAPPINGS, {"Pectoralis Major (Sternal)": 12}, total_goal=100
        )
        assert stats.by_name()["Pectoralis Major (Sternal)"].percentage == pytest.approx(25.0)

    def test_unmapped_and_ignored_sets_count_in_total_only(self) -> None:
        workouts = [
            make_workout(
                [make_set("Pull Up"), make_set("Stretching"), make_set("Cable Y Raise")]
            )
        ]
        stats = scientific_muscle_volume(workouts, MAPPINGS, {}, total_goal=150)
        assert stats.total_volume == 3
        assert sum(item.volume for item in stats.items) == pytest.approx(1.4)


class TestFunctionalVolume:
    def test_pull_up_sets(self) -> None:
        workouts = [make_workout([make_set("Pull Up")] * 4)]
        stats = functional_group_volume(
            workouts, MAPPINGS, {}, dict(DEFAULT_SCIENTIFIC_TO_FUNCTIONAL), total_goal=150
        )
        items = stats.by_name()
        assert items["Lats"].volume == pytest.approx(4.0)
        assert items["Biceps"].volume == pytest.approx(1.6)
        assert [item.name for item in stats.items] == list(FUNCTIONAL_GROUPS)

    def test_group_goal_sums_member_goals(self) -> None:
        goals = functional_group_goals({"Gluteus Maximus": 10}, dict(DEFAULT_SCIENTIFIC_TO_FUNCTIONAL))
        assert goals["Glutes"] == pytest.approx(10 + 20)
        assert goals["Lats"] == pytest.approx(20)

    def test_customization_moves_volume_and_goal(self) -> None:
        mapping = effective_functional_mapping({"Lateral Deltoid": "Front Delts"})
        workouts = [make_workout([make_set("Lateral Raise")] * 2)]
        stats = functional_group_volume(workouts, MAPPINGS, {}, mapping, total_goal=150).by_name()
        assert stats["Front Delts"].volume == pytest.approx(2.0)
        assert stats["Front Delts"].goal == pytest.approx(40)
        assert stats["Side Delts"].volume == 0
        # Side Delts has no members left.
        assert stats["Side Delts"].goal == 0
        assert stats["Side Delts"].percentage == 0

    def test_breakdown_lists_member_muscles(self) -> None:
        mapping = dict(DEFAULT_SCIENTIFIC_TO_FUNCTIONAL)
        scientific = scientific_muscle_volume(_week(), MAPPINGS, {}, total_goal=150)
        breakdown = functional_group_breakdown(scientific, "Triceps", mapping)
        assert {item.name for item in breakdown} == {
            "Triceps (Lateral/Medial)",
            "Triceps (Long Head)",
        }


def test_helpers() -> None:
    assert percentage_of_goal(5, 0) == 0.0
    assert percentage_of_goal(5, 20) == 25.0
    sets = working_sets(_week())
    assert len(sets) == 3
    assert calculate_muscle_volume([make_set("Pull Up", "warmup")], MAPPINGS) == {}
    assert aggregate_to_functional_groups(
        {"Latissimus Dorsi": 2.0, "Middle Trapezius": 1.0}, dict(DEFAULT_SCIENTIFIC_TO_FUNCTIONAL)
    ) == {"Lats": 2.0, "Traps": 1.0}


def test_packaged_pull_up_mapping() -> None:
    workouts = [make_workout([make_set("Pull Up")] * 3)]
    stats = scientific_muscle_volume(workouts, build_exercise_id_mappings(), {}, total_goal=150)
    assert stats.by_name()["Latissimus Dorsi"].volume == pytest.approx(3.0)
    assert stats.by_name()["Biceps Brachii"].volume == pytest.approx(1.2)


_set_strategy = st.builds(
    make_set,
    st.sampled_from(["Bench Press", "Pull Up", "Lateral Raise", "Stretching", "Zercher Squat"]),
    st.sampled_from(["normal", "warmup", "failure", "drop"]),
)


@given(sets=st.lists(_set_strategy, max_size=40))
@settings(max_examples=100)
def test_total_volume_counts_working_sets(sets) -> None:
    workouts = [make_workout(sets)]
    expected = sum(1 for s in sets if s.set_type != "warmup")
    scientific = scientific_muscle_volume(workouts, MAPPINGS, {}, total_goal=150)
    functional = functional_group_volume(
        workouts, MAPPINGS, {}, dict(DEFAULT_SCIENTIFIC_TO_FUNCTIONAL), total_goal=150
    )
    assert scientific.total_volume == expected
    assert functional.total_volume == expected


@given(sets=st.lists(_set_strategy, max_size=40))
@settings(max_examples=100)
def test_functional_volume_conserves_scientific_volume(sets) -> None:
    workouts = [make_workout(sets)]
    mapping = dict(DEFAULT_SCIENTIFIC_TO_FUNCTIONAL)
    scientific = scientific_muscle_volume(workouts, MAPPINGS, {}, total_goal=150)
    functional = functional_group_volume(workouts, MAPPINGS, {}, mapping, total_goal=150)
    assert sum(i.volume for i in functional.items) == pytest.approx(
        sum(i.volume for i in scientific.items)
    )
