from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from conftest import make_set, make_workout

from scimuscle.errors import NotFoundError
from scimuscle.exercise_mappings import create_exercise_mapping
from scimuscle.overrides import save_exercise_override
from scimuscle.profiles import update_goals, update_muscle_group_customization
from scimuscle.stats import aggregate_volume, daily_stats, group_breakdown
from scimuscle.windows import calendar_week

WEEK = calendar_week(today=date(2026, 10, 14))


@pytest.fixture
def logged_week(store, profile):
    store.workouts["w1"] = make_workout(
        [make_set("Pull Up", "warmup")] + [make_set("Pull Up")] * 3 + [make_set("Nordic Curl")] * 2,
        workout_id="w1",
        title="Pull",
    )
    store.workouts["w-old"] = make_workout(
        [make_set("Pull Up")] * 5, workout_id="w-old", date=datetime(2026, 10, 1, tzinfo=UTC)
    )
    return profile


@pytest.mark.asyncio
async def test_aggregate_volume(store, conn, logged_week) -> None:
    report = await aggregate_volume(conn, logged_week.id, WEEK, tz=UTC)
    scientific = report.scientific.by_name()
    functional = report.functional.by_name()
    assert scientific["Latissimus Dorsi"].volume == pytest.approx(3.0)
    assert scientific["Hamstrings"].volume == 0
    assert functional["Biceps"].volume == pytest.approx(1.2)
    assert report.scientific.total_volume == 5
    assert report.as_dict()["window"] == {"start": "2026-10-12", "end": "2026-10-18"}


@pytest.mark.asyncio
async def test_profile_layers_apply(store, conn, logged_week) -> None:
    await update_goals(conn, logged_week.id, goals={"Latissimus Dorsi": 6})
    await save_exercise_override(conn, logged_week.id, "Pull Up", {"Latissimus Dorsi": 0.5})
    await create_exercise_mapping(
        conn, logged_week.id, "nordic-curl", custom_muscle_values={"Hamstrings": 1.0}
    )
    await update_muscle_group_customization(conn, logged_week.id, {"Hamstrings": "Glutes"})
    report = await aggregate_volume(conn, logged_week.id, WEEK, tz=UTC)
    scientific = report.scientific.by_name()
    assert scientific["Latissimus Dorsi"].volume == pytest.approx(1.5)
    assert scientific["Latissimus Dorsi"].percentage == pytest.approx(25.0)
    assert scientific["Biceps Brachii"].volume == 0
    functional = report.functional.by_name()
    assert functional["Glutes"].volume == pytest.approx(2.0)
    assert functional["Hamstrings"].goal == 0


@pytest.mark.asyncio
async def test_group_breakdown(store, conn, logged_week) -> None:
    items = await group_breakdown(conn, logged_week.id, "Traps", WEEK, tz=UTC)
    assert [item.name for item in items] == [
        "Middle Trapezius",
        "Upper Trapezius",
        "Lower Trapezius",
    ]


@pytest.mark.asyncio
async def test_daily_stats(store, conn, logged_week) -> None:
    days = await daily_stats(conn, logged_week.id, WEEK, tz=UTC)
    assert len(days) == 7
    wednesday = days[2]
    assert wednesday.total_sets == 5
    assert wednesday.exercises == ["Pull Up", "Nordic Curl"]
    assert wednesday.workouts[0].exercises[1].muscles_worked == ()


@pytest.mark.asyncio
async def test_unknown_profile(store, conn) -> None:
    with pytest.raises(NotFoundError):
        await aggregate_volume(conn, "missing", WEEK, tz=UTC)
