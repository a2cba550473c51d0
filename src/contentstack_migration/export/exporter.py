"""Export orchestration.

Fetches the selected entity kinds from a stack, writes them to a snapshot
directory and downloads the asset binaries.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from ..exceptions import ContentstackError, DeadlineExceededError
from ..models.entity import EntityKind, EntityRecord, TaxonomyExport
from ..models.options import ExportOptions, ExportResult, RunPhase
from ..models.outcome import SyncOutcome
from ..operations.filters import date_range_filter
from .base import BaseRunner
from .snapshot import SnapshotWriter


class ContentstackExporter(BaseRunner):
    """Export Contentstack content into a snapshot directory.

    Example:
        >>> from contentstack_migration import ContentstackClient
        >>> from contentstack_migration.export import ContentstackExporter
        >>>
        >>> with ContentstackClient(config) as client:
        ...     exporter = ContentstackExporter(client)
        ...     result = exporter.export("export/", ExportOptions(
        ...         start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ...         end_date=datetime(2024, 6, 1, tzinfo=timezone.utc),
        ...     ))
        ...     print(result.counts)
    """

    def export(self, directory: str | Path, options: ExportOptions | None = None) -> ExportResult:
        """Export the selected kinds into ``directory``.

        Args:
            directory: Snapshot directory (created if missing)
            options: What to export (defaults to everything, no date window)

        Returns:
            ExportResult with per-kind counts; failed asset downloads are
            recorded in ``result.report``

        Raises:
            ContentstackError: If a read, a snapshot write or the deadline
                fails; the result phase is ``failed``
        """
        options = options or ExportOptions()
        result = ExportResult(directory=Path(directory))
        kinds = options.selected_kinds()
        writer = SnapshotWriter(directory, logger=self.log)

        self.log.info(
            f"Exporting {sorted(k.value for k in kinds)} to {result.directory} "
            f"(window: {options.start_date} - {options.end_date})"
        )

        with self._run_deadline(options.deadline):
            try:
                self._run(writer, options, kinds, result)
            except ContentstackError as e:
                self._fail(result, e)
                raise

        self._enter_phase(result, RunPhase.COMPLETED)
        return result

    def _run(
        self,
        writer: SnapshotWriter,
        options: ExportOptions,
        kinds: set[EntityKind],
        result: ExportResult,
    ) -> None:
        predicate = date_range_filter(options.start_date, options.end_date)
        collected: dict[EntityKind, list[EntityRecord]] = {}
        taxonomy_exports: list[TaxonomyExport] = []

        writer.prepare()

        self._enter_phase(result, RunPhase.FETCHING_SCHEMA)
        if EntityKind.CONTENT_TYPE in kinds:
            collected[EntityKind.CONTENT_TYPE] = self.service.get_content_types(predicate)
        if EntityKind.GLOBAL_FIELD in kinds:
            collected[EntityKind.GLOBAL_FIELD] = self.service.get_global_fields(predicate)

        if EntityKind.ENTRY in kinds:
            self._enter_phase(result, RunPhase.FETCHING_ENTRIES)
            # Entries are looked up under every content type, not only the
            # ones modified inside the window
            ct_uids = [ct.uid for ct in self.service.get_content_types()]
            collected[EntityKind.ENTRY] = self.service.get_entries(ct_uids, predicate)

        if EntityKind.ASSET in kinds:
            self._enter_phase(result, RunPhase.FETCHING_ASSETS)
            collected[EntityKind.ASSET] = self.service.get_assets(predicate)

        if EntityKind.TAXONOMY in kinds:
            self._enter_phase(result, RunPhase.FETCHING_TAXONOMIES)
            # Every taxonomy is exported; the date window does not apply
            taxonomies = self.service.get_taxonomies()
            collected[EntityKind.TAXONOMY] = taxonomies
            taxonomy_exports = [self.service.export_taxonomy(t) for t in taxonomies]
            result.counts[EntityKind.TERM] = sum(len(e.terms) for e in taxonomy_exports)

        self._enter_phase(result, RunPhase.PERSISTING)
        for kind, records in collected.items():
            writer.write_records(kind, records)
            result.counts[kind] = len(records)
        for taxonomy_export in taxonomy_exports:
            writer.write_taxonomy_export(taxonomy_export)

        assets = collected.get(EntityKind.ASSET)
        if assets and options.download_assets:
            self._download_assets(assets, writer, result)

    def _download_assets(
        self, assets: list[EntityRecord], writer: SnapshotWriter, result: ExportResult
    ) -> None:
        """Download asset binaries with a bounded worker pool.

        A failed download is recorded as a failed outcome. Reaching the
        deadline cancels pending downloads and fails the run.
        """
        workers = getattr(self.client.config, "download_workers", 4)
        self.log.info(f"Downloading {len(assets)} assets with {workers} workers")

        downloaded = 0
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self.service.download_asset, asset, writer.assets_dir): asset
                for asset in assets
            }
            for future in as_completed(futures):
                asset = futures[future]
                try:
                    future.result()
                except DeadlineExceededError:
                    for pending in futures:
                        pending.cancel()
                    raise
                except ContentstackError as e:
                    self.log.warning(f"Failed to download asset {asset.uid}: {e}")
                    result.report.add(SyncOutcome.failed(EntityKind.ASSET, asset.uid, str(e)))
                else:
                    downloaded += 1

        self.log.info(f"Downloaded {downloaded}/{len(assets)} assets")
