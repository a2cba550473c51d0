"""Operations shared by the synchronization service.

This package contains the paginated fetcher and collection filters.
"""

from contentstack_migration.operations.filters import date_range_filter, parse_timestamp
from contentstack_migration.operations.pagination import DEFAULT_PAGE_SIZE, fetch_all, page_count

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "date_range_filter",
    "fetch_all",
    "page_count",
    "parse_timestamp",
]
