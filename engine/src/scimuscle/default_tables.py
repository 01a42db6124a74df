"""Read-only default mapping tables.

Two JSON documents ship with the package:

- ``exercise_list.json``: canonical exercise name -> muscle contribution map.
- ``exercise_name_mappings.json``: ``{"name_mappings": {gym name -> canonical name}}``.

Keys starting with ``_`` are comments. The tables are loaded once per process
(or per explicit data directory) into immutable mappings and passed to the
resolver; nothing writes to them at runtime.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .errors import ConsistencyError, ValidationError
from .models import MuscleValues, validate_muscle_values
from .normalization import normalize_id

logger = logging.getLogger(__name__)

PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"
EXERCISE_LIST_FILENAME = "exercise_list.json"
NAME_MAPPINGS_FILENAME = "exercise_name_mappings.json"


@dataclass(frozen=True)
class DefaultMappingTables:
    exercise_muscles: Mapping[str, Mapping[str, float]]
    name_mappings: Mapping[str, str]
    # normalized id -> canonical exercise name
    canonical_names_by_id: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def canonical_ids(self) -> frozenset[str]:
        return frozenset(self.canonical_names_by_id)

    def exercise_names(self) -> list[str]:
        return list(self.exercise_muscles)

    def muscle_values(self, exercise_name: str) -> MuscleValues | None:
        values = self.exercise_muscles.get(exercise_name)
        if values is None:
            return None
        return dict(values)  # type: ignore[arg-type]

    def canonical_name_for_id(self, exercise_id: str) -> str | None:
        return self.canonical_names_by_id.get(exercise_id)


def build_default_tables(
    exercise_list: Mapping[str, Any],
    name_mappings: Mapping[str, Any],
) -> DefaultMappingTables:
    """Validate raw table documents and freeze them."""
    exercises: dict[str, Mapping[str, float]] = {}
    ids: dict[str, str] = {}
    for name, values in exercise_list.items():
        if name.startswith("_"):
            continue
        try:
            cleaned = validate_muscle_values(values, field=name)
        except ValidationError:
            logger.error("Invalid default muscle values for exercise %r", name)
            raise
        exercise_id = normalize_id(name)
        if exercise_id in ids:
            raise ConsistencyError(
                code="duplicate_canonical_id",
                message=(
                    f"Exercises {ids[exercise_id]!r} and {name!r} normalize to the same id "
                    f"{exercise_id!r}."
                ),
                field=name,
            )
        ids[exercise_id] = name
        exercises[name] = MappingProxyType(cleaned)

    raw_names = name_mappings.get("name_mappings", {})
    names = {
        str(gym_name): str(canonical)
        for gym_name, canonical in raw_names.items()
        if not str(gym_name).startswith("_")
    }
    dangling = sorted(gym for gym, canonical in names.items() if canonical not in exercises)
    if dangling:
        logger.warning(
            "%d default name mappings point at unknown canonical exercises: %s",
            len(dangling),
            ", ".join(dangling[:10]),
        )

    return DefaultMappingTables(
        exercise_muscles=MappingProxyType(exercises),
        name_mappings=MappingProxyType(names),
        canonical_names_by_id=MappingProxyType(ids),
    )


def _read_json(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValidationError(
            code="invalid_default_table",
            message=f"{path.name} must contain a JSON object.",
            field=str(path),
        )
    return data


@lru_cache(maxsize=8)
def load_default_tables(data_dir: Path | None = None) -> DefaultMappingTables:
    """Load (and cache) the default tables from ``data_dir`` or the package data."""
    directory = data_dir or PACKAGE_DATA_DIR
    tables = build_default_tables(
        _read_json(directory / EXERCISE_LIST_FILENAME),
        _read_json(directory / NAME_MAPPINGS_FILENAME),
    )
    logger.debug(
        "Loaded default tables from %s (%d exercises, %d name mappings)",
        directory,
        len(tables.exercise_muscles),
        len(tables.name_mappings),
    )
    return tables


def get_default_tables() -> DefaultMappingTables:
    return load_default_tables(None)
