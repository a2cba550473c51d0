"""Options and results for export and import runs."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from .entity import EntityKind
from .outcome import SyncReport

# Kinds a user can select; terms travel with their taxonomy
SELECTABLE_KINDS: tuple[EntityKind, ...] = (
    EntityKind.CONTENT_TYPE,
    EntityKind.GLOBAL_FIELD,
    EntityKind.ENTRY,
    EntityKind.ASSET,
    EntityKind.TAXONOMY,
)


def _resolve(kinds: set[EntityKind]) -> set[EntityKind]:
    return set(kinds) if kinds else set(SELECTABLE_KINDS)


class ExportOptions(BaseModel):
    """What to export and for which modification window.

    An empty ``kinds`` set exports every kind.
    """

    start_date: datetime | None = None
    end_date: datetime | None = None
    kinds: set[EntityKind] = Field(default_factory=set)
    download_assets: bool = True
    deadline: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_range(self) -> "ExportOptions":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    def selected_kinds(self) -> set[EntityKind]:
        return _resolve(self.kinds)


class ImportOptions(BaseModel):
    """How to apply a snapshot.

    An empty ``kinds`` set imports every kind. Selecting content types also
    applies global fields; selecting entries also applies assets.
    """

    overwrite: bool = False
    kinds: set[EntityKind] = Field(default_factory=set)
    deadline: float | None = Field(default=None, gt=0)

    def selected_kinds(self) -> set[EntityKind]:
        kinds = _resolve(self.kinds)
        if EntityKind.CONTENT_TYPE in kinds:
            kinds.add(EntityKind.GLOBAL_FIELD)
        if EntityKind.ENTRY in kinds:
            kinds.add(EntityKind.ASSET)
        return kinds


class RunPhase(str, Enum):
    """States of an export or import run."""

    INIT = "init"
    FETCHING_SCHEMA = "fetching_schema"
    FETCHING_ENTRIES = "fetching_entries"
    FETCHING_ASSETS = "fetching_assets"
    FETCHING_TAXONOMIES = "fetching_taxonomies"
    PERSISTING = "persisting"
    LOADING = "loading"
    APPLYING = "applying"
    COMPLETED = "completed"
    FAILED = "failed"


class RunResult(BaseModel):
    """Common result fields for export and import."""

    phase: RunPhase = RunPhase.INIT
    directory: Path
    report: SyncReport = Field(default_factory=SyncReport)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.phase == RunPhase.COMPLETED and self.report.success


class ExportResult(RunResult):
    """Result of an export run with per-kind record counts."""

    counts: dict[EntityKind, int] = Field(default_factory=dict)


class ImportResult(RunResult):
    """Result of an import run, including the applied content type order."""

    content_type_order: list[str] = Field(default_factory=list)
