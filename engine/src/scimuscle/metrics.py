"""In-memory ingestion metrics.

Asyncio is single-threaded, so plain dicts are enough.
"""

import time

_start_time = time.monotonic()

_COUNTERS = (
    "ingestion_batches",
    "workouts_imported",
    "workouts_updated",
    "workouts_deleted",
    "workouts_skipped",
    "unmapped_tracking_failures",
)

_metrics: dict = {name: 0 for name in _COUNTERS}
_metrics["sources"] = {}


def record_ingestion(
    source: str,
    *,
    imported: int = 0,
    updated: int = 0,
    deleted: int = 0,
    skipped: int = 0,
) -> None:
    _metrics["ingestion_batches"] += 1
    _metrics["workouts_imported"] += imported
    _metrics["workouts_updated"] += updated
    _metrics["workouts_deleted"] += deleted
    _metrics["workouts_skipped"] += skipped
    _metrics["sources"][source] = _metrics["sources"].get(source, 0) + 1


def record_unmapped_tracking_failure() -> None:
    _metrics["unmapped_tracking_failures"] += 1


def reset_metrics() -> None:
    for name in _COUNTERS:
        _metrics[name] = 0
    _metrics["sources"] = {}


def get_metrics() -> dict:
    """Return a snapshot of current metrics."""
    snapshot = {name: _metrics[name] for name in _COUNTERS}
    snapshot["uptime_seconds"] = round(time.monotonic() - _start_time, 1)
    snapshot["sources"] = dict(_metrics["sources"])
    return snapshot
