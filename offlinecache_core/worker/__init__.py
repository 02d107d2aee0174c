"""Worker module - The cache-owning worker."""

from offlinecache_core.worker.worker import (
    CACHE_URLS,
    CLEAR_CACHE,
    GET_CACHE_SIZE,
    SKIP_WAITING,
    CacheWorker,
)

__all__ = [
    "CacheWorker",
    "SKIP_WAITING",
    "CACHE_URLS",
    "CLEAR_CACHE",
    "GET_CACHE_SIZE",
]
