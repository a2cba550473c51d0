"""Entity reads, upserts and dependency ordering."""

from .dependencies import (
    Dependencies,
    content_type_dependencies,
    order_content_types,
    order_terms,
)
from .service import EntitySyncService, asset_file_name

__all__ = [
    "EntitySyncService",
    "asset_file_name",
    "Dependencies",
    "content_type_dependencies",
    "order_content_types",
    "order_terms",
]
