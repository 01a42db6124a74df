from __future__ import annotations

from collections import Counter

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from scimuscle.errors import ConsistencyError, ValidationError
from scimuscle.models import CustomMuscleGroup, MuscleGroupConfig
from scimuscle.muscle_groups import (
    DEFAULT_GROUP_NAME,
    DEFAULT_MUSCLE_GROUP_CONFIG,
    MAX_GROUPS,
    ToGroup,
    ToHidden,
    ToUngrouped,
    add_group,
    assert_single_placement,
    delete_group,
    destination_from_dict,
    displayed_ungrouped,
    move_muscle,
    muscles_available_for_group,
    muscles_available_for_ungrouped,
    placement_of,
    rename_group,
    reorder,
    reorder_groups,
    reorder_muscles,
    unassigned_muscles,
    validate_muscle_group_config,
)
from scimuscle.taxonomy import SCIENTIFIC_MUSCLES

EMPTY = MuscleGroupConfig()


def _placements(config: MuscleGroupConfig) -> Counter:
    placed = [m for group in config.groups for m in group.muscles]
    placed += list(config.ungrouped) + list(config.hidden)
    return Counter(placed)


class TestDefaultConfig:
    def test_places_every_muscle_once(self) -> None:
        result = validate_muscle_group_config(DEFAULT_MUSCLE_GROUP_CONFIG, require_complete=True)
        assert result.valid, result.errors
        assert [g.name for g in DEFAULT_MUSCLE_GROUP_CONFIG.groups] == ["Push", "Pull", "Legs", "Core"]
        assert unassigned_muscles(DEFAULT_MUSCLE_GROUP_CONFIG) == []


class TestValidation:
    def test_duplicate_muscle(self) -> None:
        config = MuscleGroupConfig(
            groups=(CustomMuscleGroup(id="a", name="A", muscles=("Hamstrings",)),),
            hidden=("Hamstrings",),
        )
        result = validate_muscle_group_config(config)
        assert not result.valid
        assert any("Hamstrings" in error for error in result.errors)
        with pytest.raises(ConsistencyError) as exc_info:
            assert_single_placement(config)
        assert exc_info.value.code == "duplicate_placement"

    def test_too_many_groups(self) -> None:
        config = MuscleGroupConfig(
            groups=tuple(CustomMuscleGroup(id=str(i), name=str(i)) for i in range(MAX_GROUPS + 1))
        )
        assert not validate_muscle_group_config(config).valid

    def test_incomplete_only_fails_when_required(self) -> None:
        assert validate_muscle_group_config(EMPTY).valid
        result = validate_muscle_group_config(EMPTY, require_complete=True)
        assert not result.valid
        assert "Missing muscles" in result.errors[0]


class TestMoveMuscle:
    def test_move_between_groups(self) -> None:
        config = move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Biceps Brachii", ToGroup("default-push"))
        assert config.group_by_id("default-push").muscles[-1] == "Biceps Brachii"
        assert "Biceps Brachii" not in config.group_by_id("default-pull").muscles
        assert placement_of(config, "Biceps Brachii") == ToGroup("default-push")

    def test_hide_then_ungroup(self) -> None:
        config = move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Soleus", ToHidden())
        assert config.hidden == ("Soleus",)
        config = move_muscle(config, "Soleus", ToUngrouped())
        assert config.hidden == ()
        assert config.ungrouped == ("Soleus",)

    def test_repeat_move_is_idempotent(self) -> None:
        once = move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Obliques", ToHidden())
        assert move_muscle(once, "Obliques", ToHidden()) == once

    def test_unknown_group(self) -> None:
        with pytest.raises(ConsistencyError) as exc_info:
            move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Obliques", ToGroup("nope"))
        assert exc_info.value.code == "unknown_group"

    def test_unknown_muscle(self) -> None:
        with pytest.raises(ValidationError):
            move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Abs", ToHidden())  # type: ignore[arg-type]

    def test_input_is_not_mutated(self) -> None:
        before = DEFAULT_MUSCLE_GROUP_CONFIG.model_dump()
        move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Latissimus Dorsi", ToHidden())
        assert DEFAULT_MUSCLE_GROUP_CONFIG.model_dump() == before


_GROUP_IDS = ["default-push", "default-pull", "default-legs", "default-core"]
_destinations = st.one_of(
    st.sampled_from(_GROUP_IDS).map(ToGroup),
    st.just(ToUngrouped()),
    st.just(ToHidden()),
)


@given(moves=st.lists(st.tuples(st.sampled_from(SCIENTIFIC_MUSCLES), _destinations), max_size=60))
@settings(max_examples=150)
def test_moves_preserve_single_placement(moves) -> None:
    config = DEFAULT_MUSCLE_GROUP_CONFIG
    for muscle, destination in moves:
        config = move_muscle(config, muscle, destination)
        assert placement_of(config, muscle) == destination
    counts = _placements(config)
    assert set(counts) == set(SCIENTIFIC_MUSCLES)
    assert max(counts.values()) == 1
    assert validate_muscle_group_config(config, require_complete=True).valid


class TestGroups:
    def test_add_group_defaults(self) -> None:
        config = add_group(EMPTY, "  ", group_id="g1")
        assert config.groups[0] == CustomMuscleGroup(id="g1", name=DEFAULT_GROUP_NAME)

    def test_add_group_generates_id(self) -> None:
        config = add_group(EMPTY, "Arms")
        assert config.groups[0].id
        assert config.groups[0].name == "Arms"

    def test_ninth_group_rejected(self) -> None:
        config = EMPTY
        for index in range(MAX_GROUPS):
            config = add_group(config, f"G{index}")
        with pytest.raises(ValidationError) as exc_info:
            add_group(config)
        assert exc_info.value.code == "group_limit_reached"

    def test_duplicate_group_id(self) -> None:
        with pytest.raises(ConsistencyError) as exc_info:
            add_group(DEFAULT_MUSCLE_GROUP_CONFIG, "Again", group_id="default-push")
        assert exc_info.value.code == "duplicate_group_id"

    def test_rename(self) -> None:
        config = rename_group(DEFAULT_MUSCLE_GROUP_CONFIG, "default-core", " Abs ")
        assert config.group_by_id("default-core").name == "Abs"
        with pytest.raises(ValidationError):
            rename_group(config, "default-core", "")

    def test_delete_moves_muscles_to_ungrouped(self) -> None:
        config = move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Soleus", ToUngrouped())
        config = delete_group(config, "default-core")
        assert config.group_by_id("default-core") is None
        assert config.ungrouped == ("Soleus", "Rectus Abdominis", "Obliques", "Hip Flexors")
        assert validate_muscle_group_config(config, require_complete=True).valid

    def test_reorder_groups(self) -> None:
        config = reorder_groups(DEFAULT_MUSCLE_GROUP_CONFIG, 3, 0)
        assert [g.id for g in config.groups] == [
            "default-core",
            "default-push",
            "default-pull",
            "default-legs",
        ]

    def test_reorder_muscles(self) -> None:
        config = reorder_muscles(DEFAULT_MUSCLE_GROUP_CONFIG, "default-core", 0, 2)
        assert config.group_by_id("default-core").muscles == (
            "Obliques",
            "Hip Flexors",
            "Rectus Abdominis",
        )

    def test_reorder_out_of_range(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            reorder(["a", "b"], 0, 2)
        assert exc_info.value.code == "index_out_of_range"
        assert exc_info.value.field == "new_index"


class TestAvailability:
    def test_unassigned_muscles_display_as_ungrouped(self) -> None:
        config = MuscleGroupConfig(ungrouped=("Soleus",), hidden=("Obliques",))
        shown = displayed_ungrouped(config)
        assert shown[0] == "Soleus"
        assert "Obliques" not in shown
        assert len(shown) == len(SCIENTIFIC_MUSCLES) - 1

    def test_available_for_ungrouped(self) -> None:
        config = move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Obliques", ToHidden())
        assert muscles_available_for_ungrouped(config) == ["Obliques"]

    def test_available_for_group_excludes_other_groups(self) -> None:
        config = move_muscle(DEFAULT_MUSCLE_GROUP_CONFIG, "Soleus", ToHidden())
        config = move_muscle(config, "Obliques", ToUngrouped())
        assert muscles_available_for_group(config, "default-push") == ["Soleus", "Obliques"]


def test_destination_from_dict() -> None:
    assert destination_from_dict({"type": "group", "groupId": "g1"}) == ToGroup("g1")
    assert destination_from_dict({"type": "hidden"}) == ToHidden()
    with pytest.raises(ValidationError):
        destination_from_dict({"type": "group"})
    with pytest.raises(ValidationError):
        destination_from_dict({"type": "trash"})
