"""Exception hierarchy for contentstack-migration.

All errors raised by the client, the synchronization service and the
export/import orchestrators derive from ContentstackError so callers can
catch a single base class.
"""

from typing import Any


class ContentstackError(Exception):
    """Base exception for all Contentstack migration errors.

    Attributes:
        message: Human readable error message
        details: Optional structured context (uid, kind, response body, ...)
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransportError(ContentstackError):
    """Request that got no usable response (network, timeout, redirects, decoding).

    Never retried.
    """


class RateLimitError(ContentstackError):
    """HTTP 429 from the Contentstack API.

    Raised for every 429 inside the executor; it escapes to the caller only
    once the retry budget is exhausted.
    """

    def __init__(
        self,
        message: str,
        *,
        attempts: int = 1,
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.attempts = attempts
        self.retry_after = retry_after


class UnexpectedStatusError(ContentstackError):
    """Any non-2xx, non-429 response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code
        self.body = body


class NotFoundError(UnexpectedStatusError):
    """The requested entity does not exist on the stack."""


class FormatError(ContentstackError):
    """A successful response whose body is not valid JSON."""


class DeadlineExceededError(ContentstackError):
    """The overall run deadline was reached."""


class ConfigurationError(ContentstackError):
    """Invalid configuration values."""


class MediaError(ContentstackError):
    """Asset binary transfer failure."""


class PartialDownloadError(MediaError):
    """Asset download failed mid-stream; the partial file has been removed."""


class ImportExportError(ContentstackError):
    """Run-level export or import failure."""


class SnapshotError(ImportExportError):
    """The snapshot directory could not be read or written."""


class DependencyCycleError(ImportExportError):
    """The selected entities reference each other in a cycle.

    Attributes:
        uids: The uids participating in the cycle
    """

    def __init__(self, uids: list[str], kind: str = "content_type") -> None:
        super().__init__(
            f"Dependency cycle between {kind} entities: {' -> '.join(uids)}",
            details={"kind": kind, "uids": uids},
        )
        self.uids = uids
        self.kind = kind
