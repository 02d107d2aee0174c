"""Interception module - Routes httpx requests through the cache."""

from offlinecache_core.interception.transport import (
    OfflineCacheTransport,
    to_httpx_response,
    to_resource_request,
)

__all__ = ["OfflineCacheTransport", "to_resource_request", "to_httpx_response"]
