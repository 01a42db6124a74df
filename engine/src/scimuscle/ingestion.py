"""Workout ingestion: file import and external workout-log sync.

The workout writes of one batch (and, for sync, the profile's checkpoint)
commit in a single transaction. Unmapped-exercise bookkeeping runs after that
commit and can only fail softly.

Connections are expected in autocommit mode, as the CLI opens them. On a
connection with an open transaction the batch block becomes a savepoint and
the caller owns the commit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Protocol

import psycopg
from pydantic import BaseModel, ConfigDict

from . import metrics, repository
from .default_tables import DefaultMappingTables, get_default_tables
from .errors import IngestionPartialFailure, ScimuscleError, SyncFetchError, ValidationError
from .models import Workout, WorkoutSet, utcnow
from .profiles import require_profile
from .unmapped import collect_unmapped_sightings, known_exercise_ids, track_unmapped_best_effort

logger = logging.getLogger(__name__)

SyncType = Literal["full", "incremental"]


class ParsedWorkout(BaseModel):
    """A workout as delivered by a parser or API client, before it has an owner."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: datetime
    title: str = ""
    sets: tuple[WorkoutSet, ...] = ()

    def to_workout(self, profile_id: str) -> Workout:
        return Workout(
            id=self.id, profile_id=profile_id, date=self.date, title=self.title, sets=self.sets
        )


class ParsedWorkoutLog(BaseModel):
    model_config = ConfigDict(frozen=True)

    workouts: tuple[ParsedWorkout, ...] = ()
    format: str = "unknown"


class ExternalFetchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    workouts: tuple[ParsedWorkout, ...] = ()
    deleted_ids: tuple[str, ...] = ()
    sync_type: SyncType = "full"


class WorkoutLogClient(Protocol):
    async def fetch_external(
        self, api_key: str, last_sync_timestamp: int | None
    ) -> ExternalFetchResult: ...

    async def validate_key(self, api_key: str) -> bool: ...


class WorkoutLogParser(Protocol):
    def parse(self, text: str) -> ParsedWorkoutLog: ...


@dataclass(frozen=True)
class ImportResult:
    imported: int
    skipped: int
    unmapped_count: int
    partial_failure: IngestionPartialFailure | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "unmapped_count": self.unmapped_count,
            "partial_failure": (
                self.partial_failure.as_receipt() if self.partial_failure is not None else None
            ),
        }


@dataclass(frozen=True)
class SyncResult:
    sync_type: SyncType
    imported: int
    updated: int
    deleted: int
    skipped: int
    unmapped_count: int
    last_sync_timestamp: int
    partial_failure: IngestionPartialFailure | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "sync_type": self.sync_type,
            "imported": self.imported,
            "updated": self.updated,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "unmapped_count": self.unmapped_count,
            "last_sync_timestamp": self.last_sync_timestamp,
            "partial_failure": (
                self.partial_failure.as_receipt() if self.partial_failure is not None else None
            ),
        }


def _bind(workout: Workout | ParsedWorkout, profile_id: str) -> Workout:
    if isinstance(workout, ParsedWorkout):
        return workout.to_workout(profile_id)
    if workout.profile_id != profile_id:
        return workout.model_copy(update={"profile_id": profile_id})
    return workout


async def _known_ids(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    tables: DefaultMappingTables,
) -> frozenset[str]:
    mappings = await repository.fetch_exercise_mappings(conn, profile_id=profile_id)
    return known_exercise_ids(tables.canonical_ids, mappings)


async def import_workouts(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    workouts: Iterable[Workout | ParsedWorkout],
    *,
    tables: DefaultMappingTables | None = None,
    now: datetime | None = None,
) -> ImportResult:
    """Insert workouts whose id is not stored yet; skip the rest.

    Re-importing the same file is safe: known ids are skipped and only newly
    inserted workouts feed the unmapped-exercise counters. The batch commits
    on its own only when ``conn`` is in autocommit mode.
    """
    await require_profile(conn, profile_id)
    resolved_tables = tables or get_default_tables()
    batch = [_bind(workout, profile_id) for workout in workouts]
    known_ids = await _known_ids(conn, profile_id, resolved_tables)

    inserted: list[Workout] = []
    skipped = 0
    async with conn.transaction():
        owners = await repository.fetch_workout_owners(
            conn, workout_ids=[workout.id for workout in batch]
        )
        stored = set(owners)
        for workout in batch:
            if workout.id in stored:
                skipped += 1
                continue
            await repository.insert_workout(conn, workout)
            stored.add(workout.id)
            inserted.append(workout)

    sightings = collect_unmapped_sightings(inserted, known_ids)
    failure = await track_unmapped_best_effort(conn, sightings, now=now)

    metrics.record_ingestion("import", imported=len(inserted), skipped=skipped)
    logger.info(
        "Imported %d workouts (%d skipped, %d unmapped exercises)",
        len(inserted),
        skipped,
        len(sightings),
        extra={
            "scimuscle_profile_id": profile_id,
            "scimuscle_imported": len(inserted),
            "scimuscle_skipped": skipped,
        },
    )
    return ImportResult(
        imported=len(inserted),
        skipped=skipped,
        unmapped_count=len(sightings),
        partial_failure=failure,
    )


async def import_log_text(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    text: str,
    parser: WorkoutLogParser,
    *,
    tables: DefaultMappingTables | None = None,
    now: datetime | None = None,
) -> ImportResult:
    parsed = parser.parse(text)
    logger.debug("Parsed %d workouts from %s log", len(parsed.workouts), parsed.format)
    return await import_workouts(conn, profile_id, parsed.workouts, tables=tables, now=now)


async def validate_api_key(client: WorkoutLogClient, api_key: str) -> bool:
    if not api_key or not api_key.strip():
        raise ValidationError(code="missing_api_key", message="API key must not be empty.", field="api_key")
    try:
        return await client.validate_key(api_key.strip())
    except ScimuscleError:
        raise
    except Exception as exc:
        raise SyncFetchError(
            code="sync_fetch_failed",
            message=f"Could not validate API key: {exc}",
            field="api_key",
        ) from exc


async def connect_api_key(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    client: WorkoutLogClient,
    api_key: str,
) -> None:
    """Validate ``api_key`` with the client and store it on the profile."""
    await require_profile(conn, profile_id)
    if not await validate_api_key(client, api_key):
        raise SyncFetchError(
            code="invalid_api_key",
            message="The workout log service rejected the API key.",
            field="api_key",
        )
    await repository.update_profile_api_key(conn, profile_id=profile_id, api_key=api_key.strip())


async def _fetch(client: WorkoutLogClient, api_key: str, since: int | None) -> ExternalFetchResult:
    try:
        return await client.fetch_external(api_key, since)
    except ScimuscleError:
        raise
    except Exception as exc:
        raise SyncFetchError(
            code="sync_fetch_failed",
            message=f"Fetching workouts from the external log failed: {exc}",
        ) from exc


async def sync_workouts(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    client: WorkoutLogClient,
    *,
    tables: DefaultMappingTables | None = None,
    now: datetime | None = None,
) -> SyncResult:
    """Pull workouts from the external log and reconcile them with storage.

    Deletions only touch workouts this profile owns. Fetched workouts are
    inserted when new, updated when this profile already owns them and
    skipped when another profile does. The new checkpoint is written in the
    same transaction as the workouts, which commits on its own only when
    ``conn`` is in autocommit mode.
    """
    profile = await require_profile(conn, profile_id)
    if not profile.api_key:
        raise ValidationError(
            code="missing_api_key",
            message="No API key configured for this profile.",
            field="api_key",
        )
    resolved_tables = tables or get_default_tables()
    known_ids = await _known_ids(conn, profile_id, resolved_tables)

    fetched = await _fetch(client, profile.api_key, profile.last_sync_timestamp)
    batch = [_bind(workout, profile_id) for workout in fetched.workouts]
    checkpoint = int((now or utcnow()).timestamp())

    inserted: list[Workout] = []
    updated = 0
    skipped = 0
    async with conn.transaction():
        deleted = await repository.delete_workouts(
            conn, profile_id=profile_id, workout_ids=list(fetched.deleted_ids)
        )
        owners = await repository.fetch_workout_owners(
            conn, workout_ids=[workout.id for workout in batch]
        )
        for workout in batch:
            owner = owners.get(workout.id)
            if owner is None:
                await repository.insert_workout(conn, workout)
                owners[workout.id] = profile_id
                inserted.append(workout)
            elif owner == profile_id:
                await repository.update_workout(conn, workout)
                updated += 1
            else:
                skipped += 1
        await repository.update_profile_sync_checkpoint(
            conn, profile_id=profile_id, last_sync_timestamp=checkpoint
        )

    sightings = collect_unmapped_sightings(inserted, known_ids)
    failure = await track_unmapped_best_effort(conn, sightings, now=now)

    metrics.record_ingestion(
        "sync", imported=len(inserted), updated=updated, deleted=deleted, skipped=skipped
    )
    logger.info(
        "%s sync: %d imported, %d updated, %d deleted, %d skipped",
        fetched.sync_type,
        len(inserted),
        updated,
        deleted,
        skipped,
        extra={"scimuscle_profile_id": profile_id, "scimuscle_sync_type": fetched.sync_type},
    )
    return SyncResult(
        sync_type=fetched.sync_type,
        imported=len(inserted),
        updated=updated,
        deleted=deleted,
        skipped=skipped,
        unmapped_count=len(sightings),
        last_sync_timestamp=checkpoint,
        partial_failure=failure,
    )


async def delete_workouts(
    conn: psycopg.AsyncConnection[Any],
    profile_id: str,
    workout_ids: Iterable[str],
) -> int:
    """Delete workouts of this profile by id and return how many went.

    Ids that are unknown or owned by another profile are ignored.
    """
    await require_profile(conn, profile_id)
    ids = list(dict.fromkeys(workout_ids))
    deleted = await repository.delete_workouts(conn, profile_id=profile_id, workout_ids=ids)
    logger.info(
        "Deleted %d of %d requested workouts",
        deleted,
        len(ids),
        extra={"scimuscle_profile_id": profile_id, "scimuscle_deleted": deleted},
    )
    return deleted
