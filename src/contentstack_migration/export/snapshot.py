"""On-disk snapshot layout.

A snapshot directory holds one JSON array per entity kind, one term export per
taxonomy and the asset binaries::

    <dir>/content_types.json
    <dir>/global_fields.json
    <dir>/entries.json
    <dir>/assets.json
    <dir>/taxonomies.json
    <dir>/taxonomies/<uid>.json
    <dir>/assets/<uid>.<filename>

Only kinds included in a run are written. Importing assets adds
``asset_uids.json`` with the uids the destination stacks gave them.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..exceptions import SnapshotError
from ..models.entity import EntityKind, EntityRecord, TaxonomyExport
from ..sync.service import asset_file_name

ASSETS_DIR = "assets"
TAXONOMIES_DIR = "taxonomies"
ASSET_UIDS_FILE = "asset_uids.json"


class _Snapshot:
    def __init__(self, directory: str | Path, logger: logging.Logger | None = None) -> None:
        self.directory = Path(directory)
        self.log = logger or logging.getLogger(__name__)

    @property
    def assets_dir(self) -> Path:
        return self.directory / ASSETS_DIR

    @property
    def taxonomies_dir(self) -> Path:
        return self.directory / TAXONOMIES_DIR

    def records_path(self, kind: EntityKind) -> Path:
        return self.directory / kind.snapshot_file

    def taxonomy_path(self, uid: str) -> Path:
        return self.taxonomies_dir / f"{uid}.json"

    def asset_path(self, record: EntityRecord) -> Path:
        return self.assets_dir / asset_file_name(record)

    def _read_json(self, path: Path) -> Any:
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise SnapshotError(f"Failed to read {path}: {e}", details={"path": str(path)}) from e

    def _write_json(self, path: Path, data: Any) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as e:
            raise SnapshotError(f"Failed to write {path}: {e}", details={"path": str(path)}) from e
        return path


class SnapshotWriter(_Snapshot):
    """Writes an export into a snapshot directory.

    Example:
        >>> writer = SnapshotWriter("export/1718000000000")
        >>> writer.prepare()
        >>> writer.write_records(EntityKind.CONTENT_TYPE, content_types)
    """

    def prepare(self) -> None:
        """Create the snapshot directory.

        Raises:
            SnapshotError: If the directory cannot be created
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SnapshotError(
                f"Cannot create snapshot directory {self.directory}: {e}",
                details={"path": str(self.directory)},
            ) from e

    def write_records(self, kind: EntityKind, records: list[EntityRecord]) -> Path:
        """Write all records of one kind as a JSON array.

        Args:
            kind: Entity kind (selects the file name)
            records: Records to persist

        Returns:
            Path of the written file
        """
        path = self._write_json(
            self.records_path(kind), [r.model_dump(mode="json") for r in records]
        )
        self.log.info(f"Wrote {len(records)} {kind.collection_key} to {path}")
        return path

    def write_taxonomy_export(self, export: TaxonomyExport) -> Path:
        path = self._write_json(
            self.taxonomy_path(export.taxonomy.uid), export.model_dump(mode="json")
        )
        self.log.debug(f"Wrote {len(export.terms)} terms of {export.taxonomy.uid} to {path}")
        return path


class SnapshotReader(_Snapshot):
    """Reads a snapshot directory written by SnapshotWriter.

    Raises:
        SnapshotError: If the directory does not exist
    """

    def __init__(self, directory: str | Path, logger: logging.Logger | None = None) -> None:
        super().__init__(directory, logger)
        if not self.directory.is_dir():
            raise SnapshotError(
                f"Snapshot directory not found: {self.directory}",
                details={"path": str(self.directory)},
            )

    def has(self, kind: EntityKind) -> bool:
        return self.records_path(kind).is_file()

    def read_records(self, kind: EntityKind) -> list[EntityRecord]:
        """Read all records of one kind.

        A kind that was not exported reads as an empty list.

        Raises:
            SnapshotError: If the file cannot be parsed or holds invalid records
        """
        path = self.records_path(kind)
        if not path.is_file():
            self.log.debug(f"No {path.name} in snapshot, nothing to apply")
            return []

        data = self._read_json(path)
        if not isinstance(data, list):
            raise SnapshotError(
                f"Expected a JSON array in {path}, got {type(data).__name__}",
                details={"path": str(path)},
            )
        try:
            records = [EntityRecord.model_validate(item) for item in data]
        except ValidationError as e:
            raise SnapshotError(
                f"Invalid record in {path}: {e}", details={"path": str(path)}
            ) from e

        self.log.debug(f"Read {len(records)} {kind.collection_key} from {path}")
        return records

    def read_taxonomy_export(self, taxonomy: EntityRecord) -> TaxonomyExport:
        """Read the term export of one taxonomy.

        Raises:
            SnapshotError: If the export file is missing or malformed
        """
        path = self.taxonomy_path(taxonomy.uid)
        if not path.is_file():
            raise SnapshotError(
                f"Term export missing for taxonomy {taxonomy.uid}: {path}",
                details={"path": str(path), "uid": taxonomy.uid},
            )
        data = self._read_json(path)
        if not isinstance(data, dict):
            raise SnapshotError(f"Expected a JSON object in {path}", details={"path": str(path)})
        try:
            return TaxonomyExport.from_api(data, fallback=taxonomy)
        except ValidationError as e:
            raise SnapshotError(
                f"Invalid term export {path}: {e}", details={"path": str(path)}
            ) from e


class AssetUidMap(_Snapshot):
    """Uids that imported assets were given on each destination stack.

    The stack assigns a new uid to every uploaded asset, so a later import of
    the same snapshot looks the asset up through this map. Stored as
    ``asset_uids.json`` in the snapshot directory, keyed by stack::

        {"<api key>/<branch>": {"<snapshot uid>": "<stack uid>"}}

    Example:
        >>> uids = AssetUidMap("export/1718000000000", stack="blt123/main")
        >>> uids.get("blt_logo")
        'blt_9f2c...'
    """

    def __init__(
        self, directory: str | Path, stack: str, logger: logging.Logger | None = None
    ) -> None:
        super().__init__(directory, logger)
        self.stack = stack
        self.path = self.directory / ASSET_UIDS_FILE
        self._stacks = self._load()
        self._uids = self._stacks.setdefault(stack, {})

    def _load(self) -> dict[str, dict[str, str]]:
        if not self.path.is_file():
            return {}
        data = self._read_json(self.path)
        if not isinstance(data, dict) or not all(isinstance(v, dict) for v in data.values()):
            raise SnapshotError(
                f"Expected an object of uid maps in {self.path}", details={"path": str(self.path)}
            )
        return data

    def get(self, uid: str) -> str | None:
        return self._uids.get(uid)

    def record(self, uid: str, stack_uid: str) -> None:
        """Remember the stack uid of an asset and save the map.

        Raises:
            SnapshotError: If the map cannot be written
        """
        if self._uids.get(uid) == stack_uid:
            return
        self._uids[uid] = stack_uid
        self._write_json(self.path, self._stacks)
        self.log.debug(f"Asset {uid} is {stack_uid} on {self.stack}")
