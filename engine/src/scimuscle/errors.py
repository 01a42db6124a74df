"""Error types and the stable error-code taxonomy for the mapping engine."""

from __future__ import annotations

from typing import Literal

ErrorClass = Literal[
    "validation",
    "not_found",
    "consistency",
    "ingestion",
    "external",
    "other",
]


class ScimuscleError(Exception):
    error_class: ErrorClass = "other"

    def __init__(
        self,
        *,
        code: str,
        message: str,
        field: str | None = None,
        docs_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.field = field
        self.docs_hint = docs_hint

    def as_receipt(self) -> dict[str, object]:
        return {
            "error_class": self.error_class,
            "error_code": self.code,
            "error_field": self.field,
            "docs_hint": self.docs_hint,
            "message": str(self),
        }


class ValidationError(ScimuscleError, ValueError):
    """Input rejected before any write; the caller can correct and resubmit."""

    error_class: ErrorClass = "validation"


class NotFoundError(ScimuscleError, LookupError):
    error_class: ErrorClass = "not_found"


class ConsistencyError(ScimuscleError):
    """A caller broke an invariant. Not retryable."""

    error_class: ErrorClass = "consistency"


class IngestionPartialFailure(ScimuscleError):
    """Best-effort bookkeeping failed after the workout write committed."""

    error_class: ErrorClass = "ingestion"


class SyncFetchError(ScimuscleError):
    error_class: ErrorClass = "external"


ERROR_CLASS_BY_CODE: dict[str, ErrorClass] = {
    "contribution_out_of_range": "validation",
    "unknown_muscle": "validation",
    "unknown_functional_group": "validation",
    "empty_name": "validation",
    "unknown_canonical_exercise": "validation",
    "group_limit_reached": "validation",
    "index_out_of_range": "validation",
    "invalid_goal": "validation",
    "invalid_muscle_group_config": "validation",
    "missing_api_key": "validation",
    "invalid_default_table": "validation",
    "invalid_window": "validation",
    "invalid_mapping_strategy": "validation",
    "profile_not_found": "not_found",
    "unknown_group": "consistency",
    "duplicate_placement": "consistency",
    "duplicate_mapping": "consistency",
    "duplicate_group_id": "consistency",
    "duplicate_canonical_id": "consistency",
    "malformed_mapping": "consistency",
    "unmapped_tracking_failed": "ingestion",
    "sync_fetch_failed": "external",
    "invalid_api_key": "external",
}


def classify_error_code(error_code: str | None) -> ErrorClass:
    normalized = str(error_code or "").strip().lower()
    if not normalized:
        return "other"
    return ERROR_CLASS_BY_CODE.get(normalized, "other")


def error_taxonomy_v1() -> dict[str, object]:
    return {
        "schema_version": "scimuscle_error_taxonomy.v1",
        "classes": ["validation", "not_found", "consistency", "ingestion", "external", "other"],
        "code_to_class": dict(ERROR_CLASS_BY_CODE),
        "retryable_classes": ["external"],
    }
