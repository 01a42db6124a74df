"""Command line interface for the scimuscle engine."""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from datetime import date
from pathlib import Path
from typing import Any, TypeVar

import click
import psycopg

from . import exercise_mappings, ingestion, profiles, stats, unmapped
from .auto_match import generate_auto_match_suggestions
from .config import Config
from .errors import ScimuscleError, error_taxonomy_v1
from .exercise_search import search_exercises
from .ingestion import ParsedWorkoutLog
from .logging import setup_logging
from .schema import ensure_schema
from .taxonomy import taxonomy_v1
from .windows import DateWindow, calendar_week, rolling_window, today_in

T = TypeVar("T")


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _run_db(config: Config, work: Callable[[psycopg.AsyncConnection[Any]], Awaitable[T]]) -> T:
    if not config.database_url:
        click.echo("Error: DATABASE_URL must be set.", err=True)
        sys.exit(1)

    async def _run() -> T:
        async with await psycopg.AsyncConnection.connect(config.database_url, autocommit=True) as conn:
            return await work(conn)

    try:
        return asyncio.run(_run())
    except ScimuscleError as exc:
        click.echo(json.dumps(exc.as_receipt(), default=str), err=True)
        sys.exit(1)


def _window(config: Config, days: int, calendar: bool, today: date | None) -> DateWindow:
    anchor = today or today_in(config.tzinfo)
    if calendar:
        return calendar_week(today=anchor)
    return rolling_window(days, today=anchor)


@click.group()
@click.pass_context
def main(ctx: click.Context):
    """Exercise-to-muscle mapping and training volume engine."""
    config = Config.from_env()
    setup_logging(config.log_format, config.log_level)
    ctx.obj = config


@main.command("init-db")
@click.pass_obj
def init_db(config: Config):
    """Create the database tables."""
    _run_db(config, ensure_schema)
    click.echo("Schema ready.")


@main.command("create-profile")
@click.argument("name")
@click.option("--total-goal", type=float, default=None, help="Weekly total set goal.")
@click.pass_obj
def create_profile(config: Config, name: str, total_goal: float | None):
    """Create a profile with default goals."""

    async def work(conn: psycopg.AsyncConnection[Any]):
        kwargs = {"total_goal": total_goal} if total_goal is not None else {}
        return await profiles.create_profile(conn, name, **kwargs)

    profile = _run_db(config, work)
    _echo_json(profile.model_dump(mode="json"))


@main.command("import-json")
@click.option("--profile-id", required=True)
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def import_json(config: Config, profile_id: str, path: Path):
    """Import workouts from a JSON document of parsed workouts."""
    log = ParsedWorkoutLog.model_validate_json(path.read_text(encoding="utf-8"))

    async def work(conn: psycopg.AsyncConnection[Any]):
        return await ingestion.import_workouts(
            conn, profile_id, log.workouts, tables=config.tables()
        )

    result = _run_db(config, work)
    _echo_json(result.as_dict())


@main.command()
@click.option("--profile-id", required=True)
@click.option("--days", type=int, default=7, show_default=True, help="Rolling window length.")
@click.option("--calendar-week", is_flag=True, help="Use the current Monday-Sunday week.")
@click.option(
    "--level",
    type=click.Choice(["scientific", "functional"]),
    default="functional",
    show_default=True,
)
@click.option("--today", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.pass_obj
def volume(config: Config, profile_id: str, days: int, calendar_week: bool, level: str, today):
    """Show set volume against goals."""
    window = _window(config, days, calendar_week, today.date() if today else None)

    async def work(conn: psycopg.AsyncConnection[Any]):
        return await stats.aggregate_volume(
            conn, profile_id, window, tz=config.tzinfo, tables=config.tables()
        )

    report = _run_db(config, work)
    payload = report.as_dict()
    _echo_json({"window": payload["window"], level: payload[level]})


@main.command()
@click.option("--profile-id", required=True)
@click.option("--calendar-week", is_flag=True, help="Use the current Monday-Sunday week.")
@click.option("--today", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.pass_obj
def daily(config: Config, profile_id: str, calendar_week: bool, today):
    """Show per-day activity for the last 7 days or the calendar week."""
    window = _window(config, 7, calendar_week, today.date() if today else None)

    async def work(conn: psycopg.AsyncConnection[Any]):
        return await stats.daily_stats(
            conn, profile_id, window, tz=config.tzinfo, tables=config.tables()
        )

    days = _run_db(config, work)
    _echo_json([day.as_dict() for day in days])


@main.command("unmapped")
@click.option("--profile-id", required=True)
@click.option("--suggest", is_flag=True, help="Include auto-match suggestions.")
@click.pass_obj
def list_unmapped(config: Config, profile_id: str, suggest: bool):
    """List exercises that could not be resolved, most frequent first."""

    async def work(conn: psycopg.AsyncConnection[Any]):
        return await unmapped.list_unmapped_exercises(conn, profile_id)

    rows = _run_db(config, work)
    payload: dict[str, Any] = {"unmapped": [row.model_dump(mode="json") for row in rows]}
    if suggest:
        payload["suggestions"] = [
            suggestion.as_dict()
            for suggestion in generate_auto_match_suggestions(rows, tables=config.tables())
        ]
    _echo_json(payload)


@main.command("map")
@click.option("--profile-id", required=True)
@click.argument("pattern")
@click.option("--canonical", "canonical_id", default=None, help="Canonical exercise id.")
@click.option("--ignore", is_flag=True, help="Count sets but attribute no muscle volume.")
@click.option("--muscles", default=None, help='JSON object, e.g. \'{"Hamstrings": 1.0}\'.')
@click.pass_obj
def map_exercise(
    config: Config,
    profile_id: str,
    pattern: str,
    canonical_id: str | None,
    ignore: bool,
    muscles: str | None,
):
    """Resolve an unmapped exercise pattern."""
    try:
        custom = json.loads(muscles) if muscles else None
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--muscles") from exc

    async def work(conn: psycopg.AsyncConnection[Any]):
        return await exercise_mappings.create_exercise_mapping(
            conn,
            profile_id,
            pattern,
            canonical_exercise_id=canonical_id,
            custom_muscle_values=custom,
            ignore=ignore,
            tables=config.tables(),
        )

    mapping = _run_db(config, work)
    _echo_json(mapping.model_dump(mode="json"))


@main.command()
@click.argument("query")
@click.option("--limit", type=int, default=10, show_default=True)
@click.pass_obj
def search(config: Config, query: str, limit: int):
    """Search canonical exercises."""
    results = search_exercises(query, limit, tables=config.tables())
    _echo_json([result.as_dict() for result in results])


@main.command()
def taxonomy():
    """Print the muscle taxonomy."""
    _echo_json(taxonomy_v1())


@main.command("error-codes")
def error_codes():
    """Print the error code taxonomy."""
    _echo_json(error_taxonomy_v1())
