"""Overall run deadline shared by every request of one run."""

import time
from collections.abc import Callable

from contentstack_migration.exceptions import DeadlineExceededError


class Deadline:
    """A point in time after which a run must stop.

    Example:
        >>> deadline = Deadline(600)
        >>> deadline.remaining() > 0
        True
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        if seconds <= 0:
            raise ValueError("deadline must be positive")
        self._clock = clock
        self.seconds = seconds
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    def check(self, what: str = "request") -> None:
        """Raise DeadlineExceededError if the deadline has passed."""
        if self.expired:
            raise DeadlineExceededError(
                f"Run deadline of {self.seconds}s reached before {what}",
                details={"deadline": self.seconds},
            )

    def ensure_fits(self, wait: float, what: str = "retry wait") -> None:
        """Raise if waiting ``wait`` seconds would cross the deadline."""
        if wait >= self.remaining():
            raise DeadlineExceededError(
                f"{what} of {wait:.3f}s would exceed the run deadline of {self.seconds}s",
                details={"deadline": self.seconds, "wait": wait},
            )
