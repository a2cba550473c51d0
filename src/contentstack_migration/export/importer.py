"""Import orchestration.

Applies a snapshot to a stack in dependency order: global fields, content
types (topologically sorted), assets, entries, then taxonomies (merged).
Entry file fields reference assets.
"""

from collections.abc import Callable
from pathlib import Path

from ..exceptions import ContentstackError, DeadlineExceededError
from ..models.entity import EntityKind, EntityRecord, TaxonomyExport
from ..models.options import ImportOptions, ImportResult, RunPhase
from ..models.outcome import SyncOutcome, SyncReport
from ..sync.dependencies import order_content_types, order_terms
from .base import BaseRunner
from .snapshot import AssetUidMap, SnapshotReader

Upsert = Callable[[EntityRecord], SyncOutcome]

# Application order of the record kinds
APPLY_ORDER: tuple[EntityKind, ...] = (
    EntityKind.GLOBAL_FIELD,
    EntityKind.CONTENT_TYPE,
    EntityKind.ASSET,
    EntityKind.ENTRY,
)


class ContentstackImporter(BaseRunner):
    """Import a snapshot directory into a stack.

    Per-entity failures are recorded in the report and the run goes on.
    A dependency cycle, an unreadable snapshot or the run deadline stop the
    run.

    Example:
        >>> with ContentstackClient(target_config) as client:
        ...     importer = ContentstackImporter(client)
        ...     result = importer.import_snapshot("export/1718000000000")
        ...     print(result.report.summary())
    """

    def import_snapshot(
        self, directory: str | Path, options: ImportOptions | None = None
    ) -> ImportResult:
        """Apply the snapshot in ``directory``.

        Args:
            directory: Snapshot directory written by an export
            options: Overwrite flag, kinds and deadline (defaults: all kinds,
                no overwrite)

        Returns:
            ImportResult with one outcome per applied entity

        Raises:
            DependencyCycleError: If selected content types form a cycle;
                nothing has been written
            SnapshotError: If the snapshot cannot be read
            DeadlineExceededError: If the run deadline is reached
        """
        options = options or ImportOptions()
        result = ImportResult(directory=Path(directory))
        kinds = options.selected_kinds()

        self.log.info(
            f"Importing {sorted(k.value for k in kinds)} from {result.directory} "
            f"(overwrite: {options.overwrite})"
        )

        with self._run_deadline(options.deadline):
            try:
                self._enter_phase(result, RunPhase.LOADING)
                reader = SnapshotReader(result.directory, logger=self.log)
                records, taxonomy_exports = self._load(reader, kinds)
                asset_uids = AssetUidMap(result.directory, self._stack_key(), logger=self.log)

                if EntityKind.CONTENT_TYPE in records:
                    records[EntityKind.CONTENT_TYPE] = order_content_types(
                        records[EntityKind.CONTENT_TYPE]
                    )
                    result.content_type_order = [r.uid for r in records[EntityKind.CONTENT_TYPE]]
                for taxonomy_export in taxonomy_exports:
                    order_terms(taxonomy_export.terms)

                self._enter_phase(result, RunPhase.APPLYING)
                self._apply(
                    reader, asset_uids, records, taxonomy_exports, options.overwrite, result.report
                )
            except ContentstackError as e:
                self._fail(result, e)
                raise

        self._enter_phase(result, RunPhase.COMPLETED)
        self.log.info(f"Import summary: {result.report.summary()}")
        return result

    def _load(
        self, reader: SnapshotReader, kinds: set[EntityKind]
    ) -> tuple[dict[EntityKind, list[EntityRecord]], list[TaxonomyExport]]:
        records = {kind: reader.read_records(kind) for kind in APPLY_ORDER if kind in kinds}

        taxonomy_exports: list[TaxonomyExport] = []
        if EntityKind.TAXONOMY in kinds:
            taxonomy_exports = [
                reader.read_taxonomy_export(taxonomy)
                for taxonomy in reader.read_records(EntityKind.TAXONOMY)
            ]
        return records, taxonomy_exports

    def _stack_key(self) -> str:
        config = self.client.config
        return f"{config.api_key}/{config.branch}"

    def _upserts(
        self, reader: SnapshotReader, asset_uids: AssetUidMap, overwrite: bool
    ) -> dict[EntityKind, Upsert]:
        return {
            EntityKind.GLOBAL_FIELD: lambda r: self.service.upsert_global_field(r, overwrite),
            EntityKind.CONTENT_TYPE: lambda r: self.service.upsert_content_type(r, overwrite),
            EntityKind.ENTRY: lambda r: self.service.upsert_entry(r, overwrite),
            EntityKind.ASSET: lambda r: self.service.upsert_asset(
                r, reader.asset_path(r), overwrite, target_uid=asset_uids.get(r.uid)
            ),
        }

    def _apply(
        self,
        reader: SnapshotReader,
        asset_uids: AssetUidMap,
        records: dict[EntityKind, list[EntityRecord]],
        taxonomy_exports: list[TaxonomyExport],
        overwrite: bool,
        report: SyncReport,
    ) -> None:
        upserts = self._upserts(reader, asset_uids, overwrite)
        for kind in APPLY_ORDER:
            if kind not in records:
                continue
            self.log.info(f"Applying {len(records[kind])} {kind.collection_key}")
            for record in records[kind]:
                outcome = self._apply_one(kind, record, upserts[kind])
                if outcome.target_uid:
                    asset_uids.record(record.uid, outcome.target_uid)
                report.add(outcome)

        for taxonomy_export in taxonomy_exports:
            uid = taxonomy_export.taxonomy.uid
            self.log.info(f"Merging taxonomy {uid} ({len(taxonomy_export.terms)} terms)")
            try:
                report.extend(self.service.merge_taxonomy(taxonomy_export))
            except DeadlineExceededError:
                raise
            except ContentstackError as e:
                self.log.error(f"Failed to merge taxonomy {uid}: {e}")
                report.add(SyncOutcome.failed(EntityKind.TAXONOMY, uid, str(e)))

    def _apply_one(self, kind: EntityKind, record: EntityRecord, upsert: Upsert) -> SyncOutcome:
        try:
            outcome = upsert(record)
        except DeadlineExceededError:
            raise
        except (ContentstackError, OSError) as e:
            self.log.error(f"Failed to apply {kind.value} {record.uid}: {e}")
            return SyncOutcome.failed(kind, record.uid, str(e))
        self.log.debug(f"{kind.value} {record.uid}: {outcome.status.value}")
        return outcome
