"""Data models for contentstack-migration."""

from .config import RetryConfig, StackConfig
from .entity import SYSTEM_FIELDS, EntityKind, EntityRecord, TaxonomyExport, strip_system_fields
from .options import (
    ExportOptions,
    ExportResult,
    ImportOptions,
    ImportResult,
    RunPhase,
)
from .outcome import OutcomeStatus, SyncOutcome, SyncReport

__all__ = [
    "StackConfig",
    "RetryConfig",
    "EntityKind",
    "EntityRecord",
    "TaxonomyExport",
    "SYSTEM_FIELDS",
    "strip_system_fields",
    "ExportOptions",
    "ImportOptions",
    "ExportResult",
    "ImportResult",
    "RunPhase",
    "OutcomeStatus",
    "SyncOutcome",
    "SyncReport",
]
