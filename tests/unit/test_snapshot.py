"""Tests for the snapshot directory layout."""

import json
from pathlib import Path

import pytest

from contentstack_migration.exceptions import SnapshotError
from contentstack_migration.export import AssetUidMap, SnapshotReader, SnapshotWriter
from contentstack_migration.models import EntityKind, EntityRecord, TaxonomyExport


def test_layout(tmp_path: Path) -> None:
    writer = SnapshotWriter(tmp_path / "snap")
    writer.prepare()

    writer.write_records(EntityKind.CONTENT_TYPE, [EntityRecord(uid="blog", title="Blog")])
    writer.write_records(
        EntityKind.ENTRY, [EntityRecord(uid="e1", title="Hi", content_type_uid="blog")]
    )
    writer.write_taxonomy_export(
        TaxonomyExport(
            taxonomy=EntityRecord(uid="regions", name="Regions"),
            terms=[EntityRecord(uid="eu", name="Europe")],
        )
    )

    snap = tmp_path / "snap"
    assert json.loads((snap / "content_types.json").read_text()) == [
        {"uid": "blog", "title": "Blog"}
    ]
    # Entries keep their routing field on disk
    assert json.loads((snap / "entries.json").read_text()) == [
        {"uid": "e1", "title": "Hi", "content_type_uid": "blog"}
    ]
    assert json.loads((snap / "taxonomies" / "regions.json").read_text())["terms"] == [
        {"uid": "eu", "name": "Europe"}
    ]
    assert not (snap / "assets.json").exists()


def test_asset_path(tmp_path: Path) -> None:
    writer = SnapshotWriter(tmp_path)

    path = writer.asset_path(EntityRecord(uid="blt1", filename="hero image.jpg"))

    assert path == tmp_path / "assets" / "blt1.hero image.jpg"


def test_read_back(tmp_path: Path) -> None:
    writer = SnapshotWriter(tmp_path)
    writer.prepare()
    writer.write_records(EntityKind.GLOBAL_FIELD, [EntityRecord(uid="seo", schema=[])])

    reader = SnapshotReader(tmp_path)

    assert reader.has(EntityKind.GLOBAL_FIELD)
    assert [r.uid for r in reader.read_records(EntityKind.GLOBAL_FIELD)] == ["seo"]
    assert reader.read_records(EntityKind.ASSET) == []


def test_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(SnapshotError):
        SnapshotReader(tmp_path / "nope")


def test_corrupt_file(tmp_path: Path) -> None:
    (tmp_path / "entries.json").write_text("[{not json", encoding="utf-8")

    with pytest.raises(SnapshotError):
        SnapshotReader(tmp_path).read_records(EntityKind.ENTRY)


def test_not_an_array(tmp_path: Path) -> None:
    (tmp_path / "assets.json").write_text('{"uid": "a"}', encoding="utf-8")

    with pytest.raises(SnapshotError):
        SnapshotReader(tmp_path).read_records(EntityKind.ASSET)


def test_record_without_uid(tmp_path: Path) -> None:
    (tmp_path / "content_types.json").write_text('[{"title": "No uid"}]', encoding="utf-8")

    with pytest.raises(SnapshotError):
        SnapshotReader(tmp_path).read_records(EntityKind.CONTENT_TYPE)


def test_missing_term_export(tmp_path: Path) -> None:
    with pytest.raises(SnapshotError):
        SnapshotReader(tmp_path).read_taxonomy_export(EntityRecord(uid="regions"))


def test_asset_uids_are_kept_per_stack(tmp_path: Path) -> None:
    AssetUidMap(tmp_path, "blt_a/main").record("blt_logo", "blt_asset_1")
    AssetUidMap(tmp_path, "blt_b/main").record("blt_logo", "blt_asset_9")

    assert AssetUidMap(tmp_path, "blt_a/main").get("blt_logo") == "blt_asset_1"
    assert AssetUidMap(tmp_path, "blt_b/main").get("blt_logo") == "blt_asset_9"
    assert AssetUidMap(tmp_path, "blt_c/main").get("blt_logo") is None
    assert not (tmp_path / "assets.json").exists()


def test_malformed_asset_uids(tmp_path: Path) -> None:
    (tmp_path / "asset_uids.json").write_text('["blt_asset_1"]', encoding="utf-8")

    with pytest.raises(SnapshotError):
        AssetUidMap(tmp_path, "blt_a/main")
