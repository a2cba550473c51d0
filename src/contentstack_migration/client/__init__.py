"""HTTP client layer for the Contentstack Content Management API."""

from .executor import RequestExecutor, raise_for_response
from .sync_client import ContentstackClient

__all__ = ["ContentstackClient", "RequestExecutor", "raise_for_response"]
