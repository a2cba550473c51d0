"""Entity synchronization service.

Per-kind reads (built on the paginated fetcher), existence checks by uid and
create-or-update ("upsert") writes against one Contentstack stack.

Existence lookup and the following write are two separate requests; an
external change between them is not detected.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from ..exceptions import ContentstackError, ImportExportError, MediaError, NotFoundError
from ..models.entity import EntityKind, EntityRecord, TaxonomyExport
from ..models.outcome import SyncOutcome
from ..operations.pagination import DEFAULT_PAGE_SIZE, Predicate, fetch_all
from .dependencies import order_terms

if TYPE_CHECKING:
    from ..client.sync_client import ContentstackClient

# Term fields computed by the server from the hierarchy
TERM_COMPUTED_FIELDS = frozenset(
    {"depth", "children_count", "ancestors", "taxonomy_uid", "referenced_entries_count"}
)

TAXONOMY_MERGED = "taxonomy exists, terms merged"
TERM_EXISTS = "term exists, existing term kept"


def asset_file_name(record: EntityRecord) -> str:
    """Snapshot file name of an asset binary: ``<uid>.<filename>``."""
    return f"{record.uid}.{record.get('filename') or 'bin'}"


class EntitySyncService:
    """Reads and writes Contentstack entities of every kind.

    Example:
        >>> with ContentstackClient(config) as client:
        ...     service = EntitySyncService(client)
        ...     outcome = service.upsert_global_field(record, overwrite=False)
        ...     print(outcome.status)
    """

    def __init__(
        self,
        client: "ContentstackClient",
        *,
        page_size: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.page_size = page_size or getattr(client.config, "page_size", DEFAULT_PAGE_SIZE)
        self.log = logger or logging.getLogger(__name__)

    # Paths

    @staticmethod
    def _collection_path(kind: EntityKind, parent_uid: str | None = None) -> str:
        if kind is EntityKind.ENTRY:
            if not parent_uid:
                raise ValueError("Entries require a content type uid")
            return f"content_types/{parent_uid}/entries"
        if kind is EntityKind.TERM:
            if not parent_uid:
                raise ValueError("Terms require a taxonomy uid")
            return f"taxonomies/{parent_uid}/terms"
        return kind.collection_key

    def _item_path(self, kind: EntityKind, uid: str, parent_uid: str | None = None) -> str:
        return f"{self._collection_path(kind, parent_uid)}/{uid}"

    def _fetch(
        self,
        kind: EntityKind,
        predicate: Predicate | None,
        parent_uid: str | None = None,
        **extra: Any,
    ) -> list[EntityRecord]:
        """Fetch a whole collection as records.

        Raises:
            ImportExportError: If an item has no uid or an unparseable
                ``updated_at``
        """
        items = fetch_all(
            self.client,
            self._collection_path(kind, parent_uid),
            kind.collection_key,
            self._guarded(kind, predicate) if predicate else None,
            page_size=self.page_size,
            logger=self.log,
        )
        records = []
        for item in items:
            try:
                records.append(EntityRecord.from_api(item, **extra))
            except ValidationError as e:
                raise self._invalid_item(kind, item, e) from e
        self.log.debug(f"{kind.collection_key} found: {len(records)}")
        return records

    def _guarded(self, kind: EntityKind, predicate: Predicate) -> Predicate:
        def guarded(item: dict[str, Any]) -> bool:
            try:
                return predicate(item)
            except ValueError as e:
                raise self._invalid_item(kind, item, e) from e

        return guarded

    @staticmethod
    def _invalid_item(kind: EntityKind, item: Any, error: Exception) -> ImportExportError:
        uid = item.get("uid") if isinstance(item, dict) else None
        return ImportExportError(
            f"Invalid {kind.value} {uid or '<no uid>'} from source: {error}",
            details={"kind": kind.value, "uid": uid},
        )

    # Reads

    def get_content_types(self, predicate: Predicate | None = None) -> list[EntityRecord]:
        return self._fetch(EntityKind.CONTENT_TYPE, predicate)

    def get_global_fields(self, predicate: Predicate | None = None) -> list[EntityRecord]:
        return self._fetch(EntityKind.GLOBAL_FIELD, predicate)

    def get_entries(
        self, content_type_uids: list[str], predicate: Predicate | None = None
    ) -> list[EntityRecord]:
        """Fetch entries of each content type and concatenate them.

        Each entry is tagged with ``content_type_uid`` so it can be routed back
        on import.
        """
        entries: list[EntityRecord] = []
        for ct_uid in content_type_uids:
            found = self._fetch(
                EntityKind.ENTRY, predicate, parent_uid=ct_uid, content_type_uid=ct_uid
            )
            self.log.debug(f"entries for {ct_uid} found: {len(found)}")
            entries.extend(found)
        return entries

    def get_assets(self, predicate: Predicate | None = None) -> list[EntityRecord]:
        return self._fetch(EntityKind.ASSET, predicate)

    def get_taxonomies(self, predicate: Predicate | None = None) -> list[EntityRecord]:
        return self._fetch(EntityKind.TAXONOMY, predicate)

    def get_terms(self, taxonomy_uid: str) -> list[EntityRecord]:
        return self._fetch(EntityKind.TERM, None, parent_uid=taxonomy_uid)

    def export_taxonomy(self, taxonomy: EntityRecord) -> TaxonomyExport:
        """Export a taxonomy with all of its terms."""
        body = self.client.get(f"taxonomies/{taxonomy.uid}/export")
        try:
            export = TaxonomyExport.from_api(body, fallback=taxonomy)
        except ValidationError as e:
            raise self._invalid_item(EntityKind.TAXONOMY, taxonomy.model_dump(), e) from e
        self.log.debug(f"Exported taxonomy {taxonomy.uid}")
        return export


    def exists(self, kind: EntityKind, uid: str, parent_uid: str | None = None) -> bool:
        """Check whether an entity exists on the stack by fetching it by uid."""
        try:
            self.client.get(self._item_path(kind, uid, parent_uid))
        except NotFoundError:
            return False
        return True

    # Writes

    def _upsert(
        self,
        kind: EntityKind,
        record: EntityRecord,
        overwrite: bool,
        parent_uid: str | None = None,
    ) -> SyncOutcome:
        body = {kind.envelope_key: record.payload()}

        if not self.exists(kind, record.uid, parent_uid):
            self.log.debug(f"Creating {kind.value}: {record.uid}")
            self.client.post(self._collection_path(kind, parent_uid), json=body)
            return SyncOutcome.created(kind, record.uid)

        if not overwrite:
            self.log.debug(f"Skipping {kind.value}: {record.uid} already exists")
            return SyncOutcome.skipped(kind, record.uid)

        self.log.debug(f"Overwriting {kind.value}: {record.uid}")
        self.client.put(self._item_path(kind, record.uid, parent_uid), json=body)
        return SyncOutcome.updated(kind, record.uid)

    def upsert_global_field(self, record: EntityRecord, overwrite: bool) -> SyncOutcome:
        return self._upsert(EntityKind.GLOBAL_FIELD, record, overwrite)

    def upsert_content_type(self, record: EntityRecord, overwrite: bool) -> SyncOutcome:
        return self._upsert(EntityKind.CONTENT_TYPE, record, overwrite)

    def upsert_entry(self, record: EntityRecord, overwrite: bool) -> SyncOutcome:
        """Upsert an entry under its ``content_type_uid``.

        Raises:
            ContentstackError: If the entry carries no content type uid
        """
        ct_uid = record.get("content_type_uid")
        if not ct_uid:
            raise ContentstackError(
                f"Entry {record.uid} has no content_type_uid", details={"uid": record.uid}
            )
        return self._upsert(EntityKind.ENTRY, record, overwrite, parent_uid=ct_uid)

    def upsert_asset(
        self,
        record: EntityRecord,
        file_path: str | Path,
        overwrite: bool,
        target_uid: str | None = None,
    ) -> SyncOutcome:
        """Upload an asset binary with its metadata.

        The stack assigns a new uid to a created asset; it is returned as the
        outcome's ``target_uid``.

        Args:
            record: Asset record from the snapshot
            file_path: Snapshot binary of the asset
            overwrite: Replace the asset when it exists
            target_uid: Uid of the asset on the stack from an earlier import
                (defaults to the snapshot uid)

        Raises:
            MediaError: If the snapshot binary is missing
        """
        path = Path(file_path)
        if not path.is_file():
            raise MediaError(
                f"Asset file not found: {path.name}", details={"uid": record.uid, "path": str(path)}
            )

        form = {
            "asset[title]": record.get("title"),
            "asset[description]": record.get("description"),
            "asset[parent_uid]": record.get("parent_uid"),
        }
        tags = record.get("tags")
        if tags:
            form["asset[tags]"] = ",".join(tags) if isinstance(tags, list) else str(tags)
        form = {k: v for k, v in form.items() if v}
        upload = {
            "form": form,
            "filename": record.get("filename") or path.name,
            "content_type": record.get("content_type"),
        }
        stack_uid = target_uid or record.uid

        if not self.exists(EntityKind.ASSET, stack_uid):
            self.log.debug(f"Uploading asset: {record.uid}")
            body = self.client.upload("POST", "assets", path, **upload)
            created_uid = (body.get("asset") or {}).get("uid") or record.uid
            if created_uid != record.uid:
                self.log.debug(f"Asset {record.uid} created as {created_uid}")
            return SyncOutcome.created(EntityKind.ASSET, record.uid, target_uid=created_uid)

        if not overwrite:
            self.log.debug(f"Skipping asset: {record.uid} already exists as {stack_uid}")
            return SyncOutcome.skipped(EntityKind.ASSET, record.uid)

        self.log.debug(f"Replacing asset: {record.uid} ({stack_uid})")
        self.client.upload("PUT", f"assets/{stack_uid}", path, **upload)
        return SyncOutcome.updated(EntityKind.ASSET, record.uid, target_uid=stack_uid)

    def merge_taxonomy(self, export: TaxonomyExport) -> list[SyncOutcome]:
        """Merge a taxonomy export into the stack. Never replaces anything.

        The taxonomy is created when absent. Terms are merged as a union by
        uid: a term that already exists is kept as is, missing terms are
        created parents first. A failing term is recorded and the merge
        continues.

        Raises:
            DependencyCycleError: If terms are their own ancestors
        """
        taxonomy = export.taxonomy
        outcomes: list[SyncOutcome] = []
        ordered_terms = order_terms(export.terms)

        if self.exists(EntityKind.TAXONOMY, taxonomy.uid):
            existing = {t.uid for t in self.get_terms(taxonomy.uid)}
            outcomes.append(
                SyncOutcome.skipped(EntityKind.TAXONOMY, taxonomy.uid, reason=TAXONOMY_MERGED)
            )
        else:
            self.log.debug(f"Creating taxonomy: {taxonomy.uid}")
            self.client.post("taxonomies", json={"taxonomy": taxonomy.payload()})
            existing = set()
            outcomes.append(SyncOutcome.created(EntityKind.TAXONOMY, taxonomy.uid))

        for term in ordered_terms:
            if term.uid in existing:
                outcomes.append(SyncOutcome.skipped(EntityKind.TERM, term.uid, reason=TERM_EXISTS))
                continue
            payload = {k: v for k, v in term.payload().items() if k not in TERM_COMPUTED_FIELDS}
            try:
                self.client.post(f"taxonomies/{taxonomy.uid}/terms", json={"term": payload})
            except ContentstackError as e:
                self.log.error(f"Failed to create term {term.uid} in {taxonomy.uid}: {e}")
                outcomes.append(SyncOutcome.failed(EntityKind.TERM, term.uid, str(e)))
                continue
            existing.add(term.uid)
            outcomes.append(SyncOutcome.created(EntityKind.TERM, term.uid))

        return outcomes

    def download_asset(self, record: EntityRecord, directory: str | Path) -> Path:
        """Download an asset binary to ``directory/<uid>.<filename>``.

        Raises:
            MediaError: If the asset has no URL or the download fails (the
                partial file is removed)
        """
        url = record.get("url")
        if not url:
            raise MediaError(f"Asset {record.uid} has no url", details={"uid": record.uid})
        return self.client.download_file(url, Path(directory) / asset_file_name(record))
