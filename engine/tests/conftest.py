"""Shared fixtures: an in-memory stand-in for ``scimuscle.repository``.

Services call repository functions through the module, so patching the
module attributes swaps the whole persistence layer. ``FakeConnection``
mimics psycopg's ``transaction()`` by snapshotting the store on entry and
restoring it when the block raises.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from scimuscle import metrics, repository
from scimuscle.errors import ConsistencyError
from scimuscle.models import (
    DefaultExerciseOverride,
    DefaultNameMappingOverride,
    ExerciseMapping,
    MuscleGroupConfig,
    Profile,
    UnmappedExercise,
    Workout,
    WorkoutSet,
    new_id,
)
from scimuscle.normalization import normalize_id

_TABLES = (
    "profiles",
    "workouts",
    "unmapped",
    "exercise_mappings",
    "exercise_overrides",
    "name_overrides",
)


class FakeStore:
    def __init__(self) -> None:
        self.profiles: dict[str, Profile] = {}
        self.workouts: dict[str, Workout] = {}
        self.unmapped: dict[tuple[str, str], UnmappedExercise] = {}
        self.exercise_mappings: dict[str, ExerciseMapping] = {}
        self.exercise_overrides: dict[tuple[str, str], DefaultExerciseOverride] = {}
        self.name_overrides: dict[tuple[str, str], DefaultNameMappingOverride] = {}
        self.fail_on: set[str] = set()
        self.calls: list[str] = []

    # Records are frozen models, so copying the dicts is a full snapshot.
    def snapshot(self) -> dict[str, dict]:
        return {name: dict(getattr(self, name)) for name in _TABLES}

    def restore(self, snapshot: dict[str, dict]) -> None:
        for name, table in snapshot.items():
            setattr(self, name, table)

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise RuntimeError(f"injected failure in {name}")

    def _set_profile(self, profile_id: str, **update: Any) -> None:
        profile = self.profiles.get(profile_id)
        if profile is not None:
            self.profiles[profile_id] = profile.model_copy(update=update)

    # --- profiles ---

    async def insert_profile(self, conn, profile: Profile) -> None:
        self._enter("insert_profile")
        self.profiles[profile.id] = profile

    async def fetch_profile(self, conn, *, profile_id: str) -> Profile | None:
        self._enter("fetch_profile")
        return self.profiles.get(profile_id)

    async def fetch_profiles(self, conn) -> list[Profile]:
        self._enter("fetch_profiles")
        return sorted(self.profiles.values(), key=lambda p: (p.created_at, p.id))

    async def update_profile_name(self, conn, *, profile_id, name) -> None:
        self._enter("update_profile_name")
        self._set_profile(profile_id, name=name)

    async def delete_profile(self, conn, *, profile_id) -> bool:
        self._enter("delete_profile")
        if self.profiles.pop(profile_id, None) is None:
            return False
        # ON DELETE CASCADE
        self.workouts = {k: w for k, w in self.workouts.items() if w.profile_id != profile_id}
        self.exercise_mappings = {
            k: m for k, m in self.exercise_mappings.items() if m.profile_id != profile_id
        }
        for name in ("unmapped", "exercise_overrides", "name_overrides"):
            table = getattr(self, name)
            setattr(self, name, {k: v for k, v in table.items() if k[0] != profile_id})
        return True

    async def update_profile_goals(self, conn, *, profile_id, goals, total_goal) -> None:
        self._enter("update_profile_goals")
        self._set_profile(profile_id, goals=dict(goals), total_goal=total_goal)

    async def update_profile_customization(self, conn, *, profile_id, customization) -> None:
        self._enter("update_profile_customization")
        self._set_profile(profile_id, muscle_group_customization=dict(customization))

    async def update_profile_muscle_groups(
        self, conn, *, profile_id, config: MuscleGroupConfig | None
    ) -> None:
        self._enter("update_profile_muscle_groups")
        self._set_profile(profile_id, custom_muscle_groups=config)

    async def update_profile_api_key(self, conn, *, profile_id, api_key) -> None:
        self._enter("update_profile_api_key")
        self._set_profile(profile_id, api_key=api_key)

    async def update_profile_sync_checkpoint(self, conn, *, profile_id, last_sync_timestamp) -> None:
        self._enter("update_profile_sync_checkpoint")
        self._set_profile(profile_id, last_sync_timestamp=last_sync_timestamp)

    # --- workouts ---

    async def fetch_workout_owners(self, conn, *, workout_ids: Sequence[str]) -> dict[str, str]:
        self._enter("fetch_workout_owners")
        return {
            workout_id: self.workouts[workout_id].profile_id
            for workout_id in workout_ids
            if workout_id in self.workouts
        }

    async def insert_workout(self, conn, workout: Workout) -> None:
        self._enter("insert_workout")
        if workout.id in self.workouts:
            raise RuntimeError(f"duplicate workout id {workout.id}")
        self.workouts[workout.id] = workout

    async def update_workout(self, conn, workout: Workout) -> None:
        self._enter("update_workout")
        existing = self.workouts.get(workout.id)
        if existing is not None and existing.profile_id == workout.profile_id:
            self.workouts[workout.id] = workout

    async def delete_workouts(self, conn, *, profile_id, workout_ids) -> int:
        self._enter("delete_workouts")
        deleted = 0
        for workout_id in workout_ids:
            workout = self.workouts.get(workout_id)
            if workout is not None and workout.profile_id == profile_id:
                del self.workouts[workout_id]
                deleted += 1
        return deleted

    async def fetch_workouts(self, conn, *, profile_id, start=None, end=None) -> list[Workout]:
        self._enter("fetch_workouts")
        return sorted(
            (
                workout
                for workout in self.workouts.values()
                if workout.profile_id == profile_id
                and (start is None or workout.date >= start)
                and (end is None or workout.date < end)
            ),
            key=lambda w: (w.date, w.id),
        )

    # --- unmapped exercises ---

    async def upsert_unmapped_exercise(
        self, conn, *, profile_id, original_name, normalized_name, count, now
    ) -> None:
        self._enter("upsert_unmapped_exercise")
        key = (profile_id, normalized_name)
        existing = self.unmapped.get(key)
        if existing is None:
            self.unmapped[key] = UnmappedExercise(
                profile_id=profile_id,
                original_name=original_name,
                normalized_name=normalized_name,
                first_seen_at=now,
                occurrence_count=count,
            )
        else:
            self.unmapped[key] = existing.model_copy(
                update={"occurrence_count": existing.occurrence_count + count}
            )

    async def fetch_unmapped_exercises(self, conn, *, profile_id) -> list[UnmappedExercise]:
        self._enter("fetch_unmapped_exercises")
        rows = [row for (owner, _), row in self.unmapped.items() if owner == profile_id]
        return sorted(rows, key=lambda row: (-row.occurrence_count, row.normalized_name))

    async def delete_unmapped_exercise(self, conn, *, profile_id, normalized_name) -> bool:
        self._enter("delete_unmapped_exercise")
        return self.unmapped.pop((profile_id, normalized_name), None) is not None

    # --- exercise mappings ---

    async def insert_exercise_mapping(self, conn, mapping: ExerciseMapping) -> None:
        self._enter("insert_exercise_mapping")
        for existing in self.exercise_mappings.values():
            if (existing.profile_id, existing.original_pattern) == (
                mapping.profile_id,
                mapping.original_pattern,
            ):
                raise ConsistencyError(
                    code="duplicate_mapping",
                    message=f"Profile already maps pattern {mapping.original_pattern!r}.",
                    field="original_pattern",
                )
        self.exercise_mappings[mapping.id] = mapping

    async def fetch_exercise_mappings(self, conn, *, profile_id) -> list[ExerciseMapping]:
        self._enter("fetch_exercise_mappings")
        return [m for m in self.exercise_mappings.values() if m.profile_id == profile_id]

    async def fetch_exercise_mapping(self, conn, *, profile_id, original_pattern):
        self._enter("fetch_exercise_mapping")
        for mapping in self.exercise_mappings.values():
            if mapping.profile_id == profile_id and mapping.original_pattern == original_pattern:
                return mapping
        return None

    async def delete_exercise_mapping(self, conn, *, profile_id, mapping_id) -> bool:
        self._enter("delete_exercise_mapping")
        mapping = self.exercise_mappings.get(mapping_id)
        if mapping is None or mapping.profile_id != profile_id:
            return False
        del self.exercise_mappings[mapping_id]
        return True

    # --- overrides ---

    async def upsert_exercise_override(self, conn, override: DefaultExerciseOverride):
        self._enter("upsert_exercise_override")
        key = (override.profile_id, override.exercise_name)
        existing = self.exercise_overrides.get(key)
        if existing is not None:
            override = existing.model_copy(
                update={
                    "custom_muscle_values": override.custom_muscle_values,
                    "updated_at": override.updated_at,
                }
            )
        self.exercise_overrides[key] = override
        return override

    async def fetch_exercise_overrides(self, conn, *, profile_id):
        self._enter("fetch_exercise_overrides")
        return sorted(
            (o for (owner, _), o in self.exercise_overrides.items() if owner == profile_id),
            key=lambda o: o.exercise_name,
        )

    async def delete_exercise_override(self, conn, *, profile_id, exercise_name) -> bool:
        self._enter("delete_exercise_override")
        return self.exercise_overrides.pop((profile_id, exercise_name), None) is not None

    async def upsert_name_mapping_override(self, conn, override: DefaultNameMappingOverride):
        self._enter("upsert_name_mapping_override")
        key = (override.profile_id, override.gym_name)
        existing = self.name_overrides.get(key)
        if existing is not None:
            override = existing.model_copy(
                update={
                    "canonical_name": override.canonical_name,
                    "updated_at": override.updated_at,
                }
            )
        self.name_overrides[key] = override
        return override

    async def fetch_name_mapping_overrides(self, conn, *, profile_id):
        self._enter("fetch_name_mapping_overrides")
        return sorted(
            (o for (owner, _), o in self.name_overrides.items() if owner == profile_id),
            key=lambda o: o.gym_name,
        )

    async def delete_name_mapping_override(self, conn, *, profile_id, gym_name) -> bool:
        self._enter("delete_name_mapping_override")
        return self.name_overrides.pop((profile_id, gym_name), None) is not None


_REPOSITORY_FUNCTIONS = (
    "insert_profile",
    "fetch_profile",
    "fetch_profiles",
    "update_profile_name",
    "delete_profile",
    "update_profile_goals",
    "update_profile_customization",
    "update_profile_muscle_groups",
    "update_profile_api_key",
    "update_profile_sync_checkpoint",
    "fetch_workout_owners",
    "insert_workout",
    "update_workout",
    "delete_workouts",
    "fetch_workouts",
    "upsert_unmapped_exercise",
    "fetch_unmapped_exercises",
    "delete_unmapped_exercise",
    "insert_exercise_mapping",
    "fetch_exercise_mappings",
    "fetch_exercise_mapping",
    "delete_exercise_mapping",
    "upsert_exercise_override",
    "fetch_exercise_overrides",
    "delete_exercise_override",
    "upsert_name_mapping_override",
    "fetch_name_mapping_overrides",
    "delete_name_mapping_override",
)


class _FakeTransaction:
    """Mimics psycopg's async transaction: rolls the store back on error."""

    def __init__(self, store: FakeStore) -> None:
        self._store = store
        self._snapshot: dict[str, dict] | None = None

    async def __aenter__(self):
        self._snapshot = self._store.snapshot()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None and self._snapshot is not None:
            self._store.restore(self._snapshot)
        return False


class FakeConnection:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.transactions = 0

    def transaction(self) -> _FakeTransaction:
        self.transactions += 1
        return _FakeTransaction(self.store)


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> FakeStore:
    fake = FakeStore()
    for name in _REPOSITORY_FUNCTIONS:
        monkeypatch.setattr(repository, name, getattr(fake, name))
    return fake


@pytest.fixture
def conn(store: FakeStore) -> FakeConnection:
    return FakeConnection(store)


@pytest.fixture
def profile(store: FakeStore) -> Profile:
    created = Profile(id="profile-1", name="Alex")
    store.profiles[created.id] = created
    return created


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset_metrics()
    yield
    metrics.reset_metrics()


def make_set(name: str, set_type: str = "normal", *, exercise_id: str | None = None) -> WorkoutSet:
    return WorkoutSet(
        exercise_id=exercise_id if exercise_id is not None else normalize_id(name),
        original_name=name,
        set_type=set_type,
        weight=50.0,
        reps=10,
    )


def make_workout(
    sets: Sequence[WorkoutSet],
    *,
    workout_id: str | None = None,
    profile_id: str = "profile-1",
    date: datetime | None = None,
    title: str = "Session",
) -> Workout:
    return Workout(
        id=workout_id or new_id(),
        profile_id=profile_id,
        date=date or datetime(2026, 10, 14, 18, 0, tzinfo=UTC),
        title=title,
        sets=tuple(sets),
    )


@pytest.fixture
def set_factory():
    return make_set


@pytest.fixture
def workout_factory():
    return make_workout
