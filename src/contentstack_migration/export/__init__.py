"""Snapshot export and import."""

from .exporter import ContentstackExporter
from .importer import ContentstackImporter
from .snapshot import AssetUidMap, SnapshotReader, SnapshotWriter

__all__ = [
    "AssetUidMap",
    "ContentstackExporter",
    "ContentstackImporter",
    "SnapshotReader",
    "SnapshotWriter",
]
