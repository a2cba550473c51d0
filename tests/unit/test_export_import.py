"""Tests for export and import orchestration against fake stacks."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from contentstack_migration import (
    ContentstackClient,
    ContentstackExporter,
    ContentstackImporter,
    EntityKind,
    ExportOptions,
    ImportOptions,
    OutcomeStatus,
    RunPhase,
)
from contentstack_migration.exceptions import (
    DependencyCycleError,
    ImportExportError,
    UnexpectedStatusError,
)

DEST_HOST = "https://dest.contentstack.test"


def _reference(uid: str, target: str) -> dict:
    return {"uid": uid, "data_type": "reference", "reference_to": [target]}


@pytest.fixture
def source(fake_stack):
    """Source stack with every entity kind and 250 blog entries."""
    stack = fake_stack()
    stack.seed(
        "global_fields",
        [
            {"uid": "seo", "title": "SEO", "schema": [{"uid": "meta", "data_type": "text"}]},
            {"uid": "banner", "title": "Banner", "schema": []},
        ],
    )
    stack.seed(
        "content_types",
        [
            {
                "uid": "blog",
                "title": "Blog",
                "schema": [
                    _reference("author", "author"),
                    {"uid": "seo", "data_type": "global_field", "reference_to": "seo"},
                ],
            },
            {"uid": "author", "title": "Author", "schema": [_reference("team", "team")]},
            {"uid": "team", "title": "Team", "schema": []},
        ],
    )
    stack.seed(
        "entries",
        [{"uid": f"blt_post_{i:03d}", "title": f"Post {i}", "body": "x" * i} for i in range(250)],
        parent="blog",
    )
    stack.seed("entries", [{"uid": "blt_jane", "title": "Jane"}], parent="author")
    stack.seed_asset("blt_logo", "logo.png", b"logo-bytes", description="Company logo")
    stack.seed_asset("blt_hero", "hero.jpg", b"hero-bytes")
    stack.seed("taxonomies", [{"uid": "regions", "name": "Regions"}])
    stack.seed(
        "terms",
        [
            {"uid": "fr", "name": "France", "parent_uid": "eu"},
            {"uid": "eu", "name": "Europe", "parent_uid": None},
        ],
        parent="regions",
    )
    return stack


def test_round_trip(
    source,
    fake_stack,
    client: ContentstackClient,
    dest_client: ContentstackClient,
    tmp_path: Path,
) -> None:
    dest = fake_stack(DEST_HOST)
    snapshot = tmp_path / "snapshot"

    exported = ContentstackExporter(client).export(snapshot)

    assert exported.phase == RunPhase.COMPLETED
    assert exported.success
    assert exported.counts[EntityKind.ENTRY] == 251
    assert exported.counts[EntityKind.TERM] == 2
    blog_pages = [p for m, p in source.requests if p == "/v3/content_types/blog/entries"]
    assert len(blog_pages) == 3
    assert (snapshot / "assets" / "blt_logo.logo.png").read_bytes() == b"logo-bytes"

    imported = ContentstackImporter(dest_client).import_snapshot(
        snapshot, ImportOptions(overwrite=True)
    )

    assert imported.phase == RunPhase.COMPLETED
    assert imported.success
    assert dest.entries["blog"] == source.entries["blog"]
    assert dest.entries["author"] == source.entries["author"]
    assert dest.collections["content_types"] == source.collections["content_types"]
    assert dest.collections["global_fields"] == source.collections["global_fields"]
    assert set(dest.terms["regions"]) == {"eu", "fr"}
    assert sorted(a["filename"] for a in dest.collections["assets"].values()) == [
        "hero.jpg",
        "logo.png",
    ]
    assert sorted(dest.binaries.values()) == [b"hero-bytes", b"logo-bytes"]


def test_import_applies_in_dependency_order(
    source, fake_stack, client, dest_client, tmp_path: Path
) -> None:
    dest = fake_stack(DEST_HOST)
    ContentstackExporter(client).export(tmp_path)

    result = ContentstackImporter(dest_client).import_snapshot(tmp_path)

    assert result.content_type_order == ["team", "author", "blog"]
    collections = [c for _, c, _ in dest.writes]
    first = {c: collections.index(c) for c in reversed(collections)}
    last = {c: len(collections) - 1 - collections[::-1].index(c) for c in collections}
    assert last["global_fields"] < first["content_types"]
    assert last["content_types"] < first["assets"]
    assert last["assets"] < first["entries"]
    assert last["entries"] < first["taxonomies"]
    ct_writes = [uid for _, c, uid in dest.writes if c == "content_types"]
    assert ct_writes == ["team", "author", "blog"]


def test_rerun_without_overwrite_skips_everything(
    source, fake_stack, client, dest_client, tmp_path: Path
) -> None:
    dest = fake_stack(DEST_HOST)
    ContentstackExporter(client).export(tmp_path)
    importer = ContentstackImporter(dest_client)
    importer.import_snapshot(tmp_path, ImportOptions(kinds={EntityKind.CONTENT_TYPE}))
    writes = len(dest.writes)

    again = importer.import_snapshot(tmp_path, ImportOptions(kinds={EntityKind.CONTENT_TYPE}))

    assert len(dest.writes) == writes
    assert again.report.count(status=OutcomeStatus.SKIPPED) == 5
    assert again.report.count(status=OutcomeStatus.CREATED) == 0


def test_reimport_finds_assets_under_their_new_uids(
    source, fake_stack, client, dest_client, tmp_path: Path
) -> None:
    dest = fake_stack(DEST_HOST)
    ContentstackExporter(client).export(tmp_path, ExportOptions(kinds={EntityKind.ASSET}))
    importer = ContentstackImporter(dest_client)
    options = ImportOptions(kinds={EntityKind.ASSET})

    first = importer.import_snapshot(tmp_path, options)
    again = importer.import_snapshot(tmp_path, options)

    assert first.report.count(EntityKind.ASSET, OutcomeStatus.CREATED) == 2
    assert again.report.count(EntityKind.ASSET, OutcomeStatus.SKIPPED) == 2
    assert sorted(dest.collections["assets"]) == ["blt_asset_1", "blt_asset_2"]
    uid_map = json.loads((tmp_path / "asset_uids.json").read_text())
    assert uid_map == {
        "blt_test_key/main": {"blt_logo": "blt_asset_1", "blt_hero": "blt_asset_2"}
    }

    replaced = importer.import_snapshot(
        tmp_path, ImportOptions(kinds={EntityKind.ASSET}, overwrite=True)
    )

    assert replaced.report.count(EntityKind.ASSET, OutcomeStatus.UPDATED) == 2
    assert sorted(dest.collections["assets"]) == ["blt_asset_1", "blt_asset_2"]


def test_date_window_filters_entries(
fake_stack, client, tmp_path: Path) -> None:
    stack = fake_stack()
    stack.seed("content_types", [{"uid": "blog", "updated_at": "2020-01-01T00:00:00.000Z"}])
    stack.seed(
        "entries",
        [
            {"uid": "old", "updated_at": "2023-06-01T00:00:00.000Z"},
            {"uid": "in_range", "updated_at": "2024-01-15T00:00:00.000Z"},
            {"uid": "new", "updated_at": "2024-05-01T00:00:00.000Z"},
        ],
        parent="blog",
    )
    options = ExportOptions(
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 2, 1, tzinfo=timezone.utc),
        kinds={EntityKind.CONTENT_TYPE, EntityKind.ENTRY},
    )

    result = ContentstackExporter(client).export(tmp_path, options)

    # The content type is outside the window but its entries are still read
    assert result.counts == {EntityKind.CONTENT_TYPE: 0, EntityKind.ENTRY: 1}
    entries = json.loads((tmp_path / "entries.json").read_text())
    assert [e["uid"] for e in entries] == ["in_range"]
    assert entries[0]["content_type_uid"] == "blog"


def test_taxonomies_ignore_the_date_window(fake_stack, client, tmp_path: Path) -> None:
    stack = fake_stack()
    stack.seed(
        "taxonomies", [{"uid": "regions", "name": "Regions", "updated_at": "2020-01-01T00:00:00Z"}]
    )
    stack.seed("terms", [{"uid": "eu", "name": "Europe", "parent_uid": None}], parent="regions")
    options = ExportOptions(
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 2, 1, tzinfo=timezone.utc),
        kinds={EntityKind.TAXONOMY},
    )

    result = ContentstackExporter(client).export(tmp_path, options)

    assert result.counts[EntityKind.TAXONOMY] == 1
    assert result.counts[EntityKind.TERM] == 1
    assert (tmp_path / "taxonomies" / "regions.json").is_file()


def test_invalid_source_item_fails_the_run(
    fake_stack, client, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    fake_stack().seed("assets", [{"uid": "blt_bad", "updated_at": "not a date"}])
    options = ExportOptions(
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 2, 1, tzinfo=timezone.utc),
        kinds={EntityKind.ASSET},
    )
    exporter = ContentstackExporter(client, logger=logging.getLogger("tests.exporter"))

    with caplog.at_level(logging.INFO, logger="tests.exporter"):
        with pytest.raises(ImportExportError) as exc_info:
            exporter.export(tmp_path, options)

    assert exc_info.value.details["uid"] == "blt_bad"
    assert "fetching_assets -> failed" in caplog.messages
    assert not (tmp_path / "assets.json").exists()


def test_only_selected_kinds_are_written(
source, client, tmp_path: Path) -> None:
    ContentstackExporter(client).export(
        tmp_path, ExportOptions(kinds={EntityKind.GLOBAL_FIELD})
    )

    assert sorted(p.name for p in tmp_path.iterdir()) == ["global_fields.json"]


def test_failed_download_is_recorded(fake_stack, client, tmp_path: Path) -> None:
    stack = fake_stack()
    stack.seed_asset("blt_ok", "ok.txt", b"ok")
    stack.seed_asset("blt_gone", "gone.txt", b"")
    del stack.binaries["blt_gone"]

    result = ContentstackExporter(client).export(tmp_path, ExportOptions(kinds={EntityKind.ASSET}))

    assert result.phase == RunPhase.COMPLETED
    assert not result.success
    assert [(f.uid, f.status) for f in result.report.failures] == [
        ("blt_gone", OutcomeStatus.FAILED)
    ]
    assert sorted(p.name for p in (tmp_path / "assets").iterdir()) == ["blt_ok.ok.txt"]


def test_rate_limited_export_recovers(source, client, sleeps: list[float], tmp_path: Path) -> None:
    source.throttle(2)

    result = ContentstackExporter(client).export(
        tmp_path, ExportOptions(kinds={EntityKind.CONTENT_TYPE})
    )

    assert result.counts[EntityKind.CONTENT_TYPE] == 3
    assert sleeps == pytest.approx([0.01, 0.02])


def test_failed_read_fails_the_run(fake_stack, stack_router, client, tmp_path: Path) -> None:
    stack_router.get("https://source.contentstack.test/v3/global_fields").mock(
        return_value=httpx.Response(500, json={"error_message": "boom"})
    )
    fake_stack()

    with pytest.raises(UnexpectedStatusError):
        ContentstackExporter(client).export(tmp_path)


def _write_snapshot(directory: Path, name: str, records: list[dict]) -> None:
    (directory / name).write_text(json.dumps(records), encoding="utf-8")


def test_cycle_fails_before_any_write(fake_stack, dest_client, tmp_path: Path) -> None:
    dest = fake_stack(DEST_HOST)
    _write_snapshot(tmp_path, "global_fields.json", [{"uid": "seo", "schema": []}])
    _write_snapshot(
        tmp_path,
        "content_types.json",
        [
            {"uid": "a", "schema": [_reference("to_b", "b")]},
            {"uid": "b", "schema": [_reference("to_a", "a")]},
        ],
    )

    with pytest.raises(DependencyCycleError):
        ContentstackImporter(dest_client).import_snapshot(tmp_path)

    assert dest.requests == []


def test_entity_failure_does_not_stop_the_run(fake_stack, dest_client, tmp_path: Path) -> None:
    dest = fake_stack(DEST_HOST)
    _write_snapshot(
        tmp_path,
        "entries.json",
        [
            {"uid": "orphan", "title": "No content type"},
            {"uid": "e1", "title": "Fine", "content_type_uid": "blog"},
        ],
    )

    result = ContentstackImporter(dest_client).import_snapshot(
        tmp_path, ImportOptions(kinds={EntityKind.ENTRY})
    )

    assert result.phase == RunPhase.COMPLETED
    assert [(o.uid, o.status) for o in result.report.for_kind(EntityKind.ENTRY)] == [
        ("orphan", OutcomeStatus.FAILED),
        ("e1", OutcomeStatus.CREATED),
    ]
    assert set(dest.entries["blog"]) == {"e1"}


def test_missing_asset_binary_is_an_entity_failure(
    fake_stack, dest_client, tmp_path: Path
) -> None:
    fake_stack(DEST_HOST)
    _write_snapshot(tmp_path, "assets.json", [{"uid": "blt_x", "filename": "x.png"}])

    result = ContentstackImporter(dest_client).import_snapshot(
        tmp_path, ImportOptions(kinds={EntityKind.ASSET})
    )

    [failure] = result.report.failures
    assert failure.uid == "blt_x"
    assert "Asset file not found" in failure.reason
