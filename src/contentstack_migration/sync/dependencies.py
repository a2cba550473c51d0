"""Dependency ordering for import.

A content type must exist before any content type that references it can be
created. The edges are read from the content type ``schema``: reference
fields name other content types, global field fields name global fields, and
``group`` / ``blocks`` fields nest further schemas.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from typing import Any

from ..exceptions import DependencyCycleError
from ..models.entity import EntityKind, EntityRecord

logger = logging.getLogger(__name__)

# Pseudo content type used by rich text fields for embedded assets
_ASSET_REFERENCE = "sys_assets"


@dataclass
class Dependencies:
    """Entities a content type references."""

    content_types: set[str] = field(default_factory=set)
    global_fields: set[str] = field(default_factory=set)


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def _walk_schema(schema: Iterable[Any], deps: Dependencies) -> None:
    for item in schema:
        if not isinstance(item, dict):
            continue
        data_type = item.get("data_type")

        if data_type == "reference":
            deps.content_types.update(_as_list(item.get("reference_to")))
        elif data_type == "global_field":
            deps.global_fields.update(_as_list(item.get("reference_to")))
        elif data_type in ("json", "text") and item.get("reference_to"):
            # Rich text fields with embedded entries
            refs = _as_list(item.get("reference_to"))
            deps.content_types.update(r for r in refs if r != _ASSET_REFERENCE)
        elif data_type == "group":
            _walk_schema(item.get("schema") or [], deps)
        elif data_type == "blocks":
            for block in item.get("blocks") or []:
                if not isinstance(block, dict):
                    continue
                if block.get("reference_to"):
                    deps.global_fields.update(_as_list(block.get("reference_to")))
                _walk_schema(block.get("schema") or [], deps)


def content_type_dependencies(record: EntityRecord) -> Dependencies:
    """Collect the content types and global fields a schema references.

    Example:
        >>> ct = EntityRecord(uid="blog", schema=[
        ...     {"uid": "author", "data_type": "reference", "reference_to": ["author"]},
        ...     {"uid": "seo", "data_type": "global_field", "reference_to": "seo"},
        ... ])
        >>> deps = content_type_dependencies(ct)
        >>> sorted(deps.content_types), sorted(deps.global_fields)
        (['author'], ['seo'])
    """
    deps = Dependencies()
    _walk_schema(record.get("schema") or [], deps)
    return deps


def _topological_order(
    records: list[EntityRecord],
    edges: dict[str, set[str]],
    kind: EntityKind,
) -> list[EntityRecord]:
    by_uid: dict[str, EntityRecord] = {}
    for record in records:
        if record.uid in by_uid:
            logger.warning(f"Duplicate {kind.value} uid {record.uid}, keeping the first")
            continue
        by_uid[record.uid] = record

    sorter: TopologicalSorter[str] = TopologicalSorter()
    for uid in by_uid:
        sorter.add(uid, *sorted(edges.get(uid, set())))

    try:
        order = list(sorter.static_order())
    except CycleError as e:
        cycle = list(e.args[1]) if len(e.args) > 1 else []
        raise DependencyCycleError(cycle, kind=kind.value) from e

    return [by_uid[uid] for uid in order]


def order_content_types(records: list[EntityRecord]) -> list[EntityRecord]:
    """Order content types so every referenced content type comes first.

    Only edges between the given content types count: a reference to a
    content type outside the selection is assumed to exist on the
    destination, and a self reference is not an ordering constraint.

    Raises:
        DependencyCycleError: If the selected content types reference each
            other in a cycle
    """
    selected = {r.uid for r in records}
    edges: dict[str, set[str]] = {}
    for record in records:
        refs = content_type_dependencies(record).content_types
        external = refs - selected
        if external:
            logger.debug(
                f"{record.uid} references content types outside the import: {sorted(external)}"
            )
        edges[record.uid] = (refs & selected) - {record.uid}

    ordered = _topological_order(records, edges, EntityKind.CONTENT_TYPE)
    logger.debug(f"Content type order: {[r.uid for r in ordered]}")
    return ordered


def order_terms(terms: list[EntityRecord]) -> list[EntityRecord]:
    """Order taxonomy terms parents first (by ``parent_uid``).

    Raises:
        DependencyCycleError: If terms are their own ancestors
    """
    selected = {t.uid for t in terms}
    edges = {
        t.uid: ({t.get("parent_uid")} & selected) - {t.uid}
        for t in terms
        if t.get("parent_uid")
    }
    return _topological_order(terms, edges, EntityKind.TERM)
