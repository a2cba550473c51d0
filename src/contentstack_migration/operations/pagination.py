"""Paginated collection fetching.

Contentstack list endpoints accept ``include_count=true&limit=<n>&skip=<offset>``
and report the collection size in ``count``. fetch_all reads the first page,
derives how many pages remain from ``count`` and requests them one after the
other, so page ``i + 1`` is only requested once page ``i`` has completed.
"""

import logging
import math
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..log import trace

if TYPE_CHECKING:
    from ..client.sync_client import ContentstackClient

_logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

Predicate = Callable[[dict[str, Any]], bool]


def _page_items(response: dict[str, Any], collection_key: str) -> list[dict[str, Any]]:
    """Items of one page; a missing key or empty list is an empty page."""
    items = response.get(collection_key) if isinstance(response, dict) else None
    if not items or not isinstance(items, list):
        return []
    return list(items)


def page_count(total: int, page_size: int) -> int:
    """Number of pages needed for ``total`` items."""
    if total <= 0:
        return 0
    return math.ceil(total / page_size)


def fetch_all(
    client: "ContentstackClient",
    path: str,
    collection_key: str,
    predicate: Predicate | None = None,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    params: dict[str, Any] | None = None,
    logger: logging.Logger | None = None,
) -> list[dict[str, Any]]:
    """Fetch every item of a paginated collection.

    Any failure on any page propagates; items from earlier pages are
    discarded with it, so callers never receive a partial collection.

    Args:
        client: ContentstackClient instance
        path: Collection path (e.g. "content_types")
        collection_key: Key holding the items (e.g. "content_types")
        predicate: Applied once over the assembled items (e.g. a date filter)
        page_size: Items per page
        params: Extra query parameters sent with every page
        logger: Injected logger

    Returns:
        Items in source page order, filtered by ``predicate``

    Example:
        >>> with ContentstackClient(config) as client:
        ...     types = fetch_all(client, "content_types", "content_types")
        ...     print(len(types))
    """
    log = logger or _logger
    base_params = {**(params or {}), "include_count": "true", "limit": page_size}

    first = client.get(path, params=base_params)
    data = _page_items(first, collection_key)
    trace(log, f"{path} page #1: {len(data)} {collection_key}")

    if data:
        total = first.get("count")
        if not isinstance(total, int):
            log.debug(f"{path} reported no count, treating the first page as complete")
            total = len(data)

        pages = page_count(total, page_size)
        for page in range(1, pages):
            response = client.get(path, params={**base_params, "skip": page * page_size})
            items = _page_items(response, collection_key)
            trace(log, f"{path} page #{page + 1}/{pages}: {len(items)} {collection_key}")
            data.extend(items)

    if predicate is None:
        return data

    filtered = [item for item in data if predicate(item)]
    log.debug(f"{path}: {len(filtered)} of {len(data)} {collection_key} passed the filter")
    return filtered
