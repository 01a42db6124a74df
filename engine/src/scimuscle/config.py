import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo

from .default_tables import DefaultMappingTables, load_default_tables


@dataclass(frozen=True)
class Config:
    database_url: str | None = None
    log_format: str = "json"
    log_level: str = "INFO"
    timezone: str = "UTC"
    mapping_data_dir: Path | None = None

    @classmethod
    def from_env(cls, *, require_database: bool = False) -> "Config":
        database_url = os.environ.get("DATABASE_URL") or None
        if require_database and not database_url:
            raise RuntimeError("DATABASE_URL must be set")

        data_dir = os.environ.get("SCIMUSCLE_MAPPING_DATA_DIR")
        return cls(
            database_url=database_url,
            log_format=os.environ.get("SCIMUSCLE_LOG_FORMAT", "json"),
            log_level=os.environ.get("SCIMUSCLE_LOG_LEVEL", "INFO").upper(),
            timezone=os.environ.get("SCIMUSCLE_TIMEZONE", "UTC"),
            mapping_data_dir=Path(data_dir) if data_dir else None,
        )

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def tables(self) -> DefaultMappingTables:
        return load_default_tables(self.mapping_data_dir)
