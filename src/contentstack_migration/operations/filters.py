"""Inclusion predicates applied to fetched collections."""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp ("2024-06-01T10:00:00.000Z") as aware UTC.

    Naive values are taken to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str):
        raise ValueError(f"Not a timestamp: {value!r}")
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def date_range_filter(
    start: datetime | None = None, end: datetime | None = None
) -> Callable[[dict[str, Any]], bool]:
    """Build a predicate keeping entities modified strictly inside (start, end).

    - an entity without ``updated_at`` always passes
    - with both bounds, it passes iff ``start < updated_at < end``
    - with only one bound (or none), everything passes

    The one-bound pass-through is deliberate and stays until the intended
    semantics of a single bound are clarified.

    Example:
        >>> keep = date_range_filter(datetime(2024, 1, 1), datetime(2024, 2, 1))
        >>> keep({"uid": "a", "updated_at": "2024-01-15T00:00:00.000Z"})
        True
        >>> keep({"uid": "b", "updated_at": "2024-03-01T00:00:00.000Z"})
        False
    """
    lower = parse_timestamp(start) if start else None
    upper = parse_timestamp(end) if end else None

    def predicate(entity: dict[str, Any]) -> bool:
        updated_at = entity.get("updated_at")
        if not updated_at:
            return True
        if lower is None or upper is None:
            return True
        return lower < parse_timestamp(updated_at) < upper

    return predicate
