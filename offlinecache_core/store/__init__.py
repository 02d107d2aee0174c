"""Store module - Namespaced storage backends."""

from offlinecache_core.store.backend import (
    StorageBackend,
    StorageStats,
    StorageConfig,
)
from offlinecache_core.store.memory import MemoryStore
from offlinecache_core.store.redis import RedisStore, RedisConfig

__all__ = [
    "StorageBackend",
    "StorageStats",
    "StorageConfig",
    "MemoryStore",
    "RedisStore",
    "RedisConfig",
]
