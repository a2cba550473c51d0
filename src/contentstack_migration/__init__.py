"""contentstack-migration: export and import Contentstack stacks.

This package moves content between a Contentstack stack and a local snapshot
directory, including:
- Content types, global fields, entries, assets and taxonomies
- Date-window filtering of exports
- Dependency-ordered, idempotent imports (create, update or skip)
- Rate-limit aware requests with bounded linear backoff
"""

from .__version__ import __version__
from .client import ContentstackClient, RequestExecutor
from .config_factory import ConfigFactory, load_config
from .exceptions import (
    ConfigurationError,
    ContentstackError,
    DeadlineExceededError,
    DependencyCycleError,
    FormatError,
    ImportExportError,
    MediaError,
    NotFoundError,
    PartialDownloadError,
    RateLimitError,
    SnapshotError,
    TransportError,
    UnexpectedStatusError,
)
from .export import ContentstackExporter, ContentstackImporter
from .models import (
    EntityKind,
    EntityRecord,
    ExportOptions,
    ExportResult,
    ImportOptions,
    ImportResult,
    OutcomeStatus,
    RetryConfig,
    RunPhase,
    StackConfig,
    SyncOutcome,
    SyncReport,
)
from .sync import EntitySyncService

__all__ = [
    "__version__",
    # Client
    "ContentstackClient",
    "RequestExecutor",
    # Configuration
    "StackConfig",
    "RetryConfig",
    "ConfigFactory",
    "load_config",
    # Records and results
    "EntityKind",
    "EntityRecord",
    "OutcomeStatus",
    "SyncOutcome",
    "SyncReport",
    "ExportOptions",
    "ImportOptions",
    "ExportResult",
    "ImportResult",
    "RunPhase",
    # Services
    "EntitySyncService",
    "ContentstackExporter",
    "ContentstackImporter",
    # Exceptions
    "ContentstackError",
    "TransportError",
    "RateLimitError",
    "UnexpectedStatusError",
    "NotFoundError",
    "FormatError",
    "DeadlineExceededError",
    "ConfigurationError",
    "MediaError",
    "PartialDownloadError",
    "ImportExportError",
    "SnapshotError",
    "DependencyCycleError",
]
