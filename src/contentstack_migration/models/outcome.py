"""Per-entity sync outcomes and the run-wide report."""

import threading
from collections import Counter
from enum import Enum

from pydantic import BaseModel, ConfigDict, PrivateAttr

from .entity import EntityKind

SKIPPED_EXISTS = "already exists, overwrite disabled"


class OutcomeStatus(str, Enum):
    """Result of applying one entity."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncOutcome(BaseModel):
    """Outcome of one entity in one run.

    ``uid`` is the snapshot uid. For assets, which get a new uid when
    created, ``target_uid`` is the uid on the stack.
    """

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    uid: str
    status: OutcomeStatus
    reason: str = ""
    target_uid: str | None = None

    @classmethod
    def created(
        cls, kind: EntityKind, uid: str, target_uid: str | None = None
    ) -> "SyncOutcome":
        return cls(kind=kind, uid=uid, status=OutcomeStatus.CREATED, target_uid=target_uid)

    @classmethod
    def updated(
        cls, kind: EntityKind, uid: str, target_uid: str | None = None
    ) -> "SyncOutcome":
        return cls(kind=kind, uid=uid, status=OutcomeStatus.UPDATED, target_uid=target_uid)

    @classmethod
    def skipped(cls, kind: EntityKind, uid: str, reason: str = SKIPPED_EXISTS) -> "SyncOutcome":
        return cls(kind=kind, uid=uid, status=OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, kind: EntityKind, uid: str, reason: str) -> "SyncOutcome":
        return cls(kind=kind, uid=uid, status=OutcomeStatus.FAILED, reason=reason)


class SyncReport(BaseModel):
    """Aggregates outcomes for a run.

    ``add`` is safe to call from worker threads (asset downloads run in a
    pool).

    Example:
        >>> report = SyncReport()
        >>> report.add(SyncOutcome.created(EntityKind.ENTRY, "blt1"))
        >>> report.count(EntityKind.ENTRY, OutcomeStatus.CREATED)
        1
    """

    outcomes: list[SyncOutcome] = []

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def add(self, outcome: SyncOutcome) -> None:
        with self._lock:
            self.outcomes.append(outcome)

    def extend(self, outcomes: list[SyncOutcome]) -> None:
        with self._lock:
            self.outcomes.extend(outcomes)

    def count(self, kind: EntityKind | None = None, status: OutcomeStatus | None = None) -> int:
        """Number of outcomes matching ``kind`` and ``status`` (None matches all)."""
        with self._lock:
            return sum(
                1
                for o in self.outcomes
                if (kind is None or o.kind == kind) and (status is None or o.status == status)
            )

    def for_kind(self, kind: EntityKind) -> list[SyncOutcome]:
        with self._lock:
            return [o for o in self.outcomes if o.kind == kind]

    @property
    def failures(self) -> list[SyncOutcome]:
        with self._lock:
            return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]

    @property
    def success(self) -> bool:
        """True when no entity failed."""
        return not self.failures

    def summary(self) -> dict[str, dict[str, int]]:
        """Counts per kind and status, e.g. {"entry": {"created": 3}}."""
        with self._lock:
            counts = Counter((o.kind.value, o.status.value) for o in self.outcomes)
        summary: dict[str, dict[str, int]] = {}
        for (kind, status), n in counts.items():
            summary.setdefault(kind, {})[status] = n
        return summary
