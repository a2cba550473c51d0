"""Entity records exchanged with Contentstack and stored in snapshots.

Contentstack payloads are open maps. EntityRecord keeps them open but
requires a ``uid`` so a missing identifier fails at the boundary instead of
deep inside a request body.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# Server-assigned or SDK capability fields; never round-tripped on import
SYSTEM_FIELDS: frozenset[str] = frozenset(
    {
        "created_at",
        "updated_at",
        "created_by",
        "updated_by",
        "ACL",
        "stackHeaders",
        "urlPath",
        "_version",
        "_in_progress",
        "update",
        "delete",
        "fetch",
        "publish",
        "unpublish",
        "publishRequest",
        "setWorkflowStage",
        "import",
    }
)

# Kept in snapshots to route entries, removed from request bodies
ROUTING_FIELDS: frozenset[str] = frozenset({"content_type_uid"})


class EntityKind(str, Enum):
    """Kinds of Contentstack entities handled by the migration."""

    CONTENT_TYPE = "content_type"
    GLOBAL_FIELD = "global_field"
    ENTRY = "entry"
    ASSET = "asset"
    TAXONOMY = "taxonomy"
    TERM = "term"

    @property
    def collection_key(self) -> str:
        """Key holding the list in collection responses (e.g. "content_types")."""
        if self is EntityKind.ENTRY:
            return "entries"
        if self is EntityKind.TAXONOMY:
            return "taxonomies"
        return f"{self.value}s"

    @property
    def envelope_key(self) -> str:
        """Key wrapping a single record in request/response bodies."""
        return self.value

    @property
    def snapshot_file(self) -> str:
        """Snapshot file name holding this kind."""
        return f"{self.collection_key}.json"


class EntityRecord(BaseModel):
    """One Contentstack object with a required uid and arbitrary extra fields.

    Example:
        >>> record = EntityRecord.from_api({"uid": "blog", "title": "Blog", "_version": 3})
        >>> record.uid
        'blog'
        >>> record.payload()
        {'uid': 'blog', 'title': 'Blog'}
    """

    model_config = ConfigDict(extra="allow")

    uid: str

    @field_validator("uid")
    @classmethod
    def uid_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("uid cannot be empty")
        return value

    @classmethod
    def from_api(cls, data: dict[str, Any], **extra: Any) -> "EntityRecord":
        """Build a record from an API payload, dropping system-managed fields.

        Args:
            data: Raw entity mapping from the API
            **extra: Additional fields to attach (e.g. content_type_uid)
        """
        cleaned = strip_system_fields(data)
        cleaned.update(extra)
        return cls.model_validate(cleaned)

    @property
    def fields(self) -> dict[str, Any]:
        """All kind-specific fields except uid."""
        return dict(self.model_extra or {})

    def get(self, name: str, default: Any = None) -> Any:
        """Read a field from the extension bag."""
        if name == "uid":
            return self.uid
        return (self.model_extra or {}).get(name, default)

    def payload(self) -> dict[str, Any]:
        """Request body content for this record."""
        data = self.model_dump(mode="json")
        for name in ROUTING_FIELDS:
            data.pop(name, None)
        return data


class TaxonomyExport(BaseModel):
    """A taxonomy with its full, flat list of terms (parents via ``parent_uid``)."""

    taxonomy: EntityRecord
    terms: list[EntityRecord] = []

    @classmethod
    def from_api(cls, data: dict[str, Any], fallback: EntityRecord) -> "TaxonomyExport":
        """Build from a ``/taxonomies/{uid}/export`` body.

        Args:
            data: Export response body
            fallback: Taxonomy record from the list endpoint, used when the
                body does not carry one
        """
        raw_taxonomy = data.get("taxonomy")
        taxonomy = EntityRecord.from_api(raw_taxonomy) if raw_taxonomy else fallback
        terms = [EntityRecord.from_api(t) for t in data.get("terms") or []]
        return cls(taxonomy=taxonomy, terms=terms)


def strip_system_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Return a shallow copy of ``data`` without system-managed fields."""
    return {k: v for k, v in data.items() if k not in SYSTEM_FIELDS}
