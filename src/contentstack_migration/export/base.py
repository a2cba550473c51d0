"""Shared plumbing for export and import runs."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from ..models.options import RunPhase, RunResult
from ..sync.service import EntitySyncService
from ..utils.deadline import Deadline

if TYPE_CHECKING:
    from ..client.sync_client import ContentstackClient


class BaseRunner:
    """Base class for ContentstackExporter and ContentstackImporter.

    Not intended to be used directly.
    """

    def __init__(
        self,
        client: "ContentstackClient",
        *,
        service: EntitySyncService | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            client: Client bound to the stack
            service: Entity service (defaults to one built on ``client``)
            logger: Injected logger (defaults to the module logger)
        """
        self.client = client
        self.log = logger or logging.getLogger(type(self).__module__)
        self.service = service or EntitySyncService(client, logger=self.log)

    def _enter_phase(self, result: RunResult, phase: RunPhase) -> None:
        self.log.info(f"{result.phase.value} -> {phase.value}")
        result.phase = phase

    def _fail(self, result: RunResult, error: Exception) -> None:
        result.error = str(error)
        self.log.error(f"Run failed during {result.phase.value}: {error}")
        self._enter_phase(result, RunPhase.FAILED)

    @contextmanager
    def _run_deadline(self, seconds: float | None) -> Iterator[None]:
        """Apply a run deadline to the client for the duration of a run."""
        if seconds is None:
            yield
            return

        previous = self.client.deadline
        self.client.deadline = Deadline(seconds)
        try:
            yield
        finally:
            self.client.deadline = previous
