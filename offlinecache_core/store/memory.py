"""OfflineCache Memory Store - In-Memory Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from offlinecache_core.cache.entry import CacheEntry
from offlinecache_core.errors import CacheWriteFailure
from offlinecache_core.store.backend import StorageBackend, StorageConfig

logger = logging.getLogger(__name__)


class MemoryStore(StorageBackend):
    """In-memory storage backend.

    Deterministic and dependency-free, used in tests and for
    single-process hosts without persistent storage.

    Features:
    - Insertion-ordered namespaces (OrderedDict)
    - Optional byte quota raising CacheWriteFailure
    - Memory tracking

    Example:
        store = MemoryStore(StorageConfig(max_bytes=50 * 1024 * 1024))
        await store.put("app-v1-pages", CacheEntry(key=url, payload=snapshot))
        entry = await store.get("app-v1-pages", url)
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        """Initialize memory store.

        Args:
            config: Storage configuration
        """
        super().__init__(config)
        self._data: Dict[str, "OrderedDict[str, CacheEntry]"] = {}

    async def get(self, namespace: str, key: str) -> Optional[CacheEntry]:
        self._stats.reads += 1
        bucket = self._data.get(namespace)
        if bucket is None:
            return None
        return bucket.get(key)

    async def put(self, namespace: str, entry: CacheEntry) -> None:
        bucket = self._data.setdefault(namespace, OrderedDict())

        if self.config.max_bytes is not None:
            existing = bucket.get(entry.key)
            current = self.memory_usage() - (existing.size_bytes if existing else 0)
            if current + entry.size_bytes > self.config.max_bytes:
                self._stats.record_error("quota exceeded")
                raise CacheWriteFailure(
                    f"Quota exceeded writing {entry.key} to {namespace}: "
                    f"{current + entry.size_bytes} > {self.config.max_bytes} bytes"
                )

        # Replace-by-key moves the key to the end
        bucket.pop(entry.key, None)
        bucket[entry.key] = entry
        self._stats.writes += 1

    async def delete(self, namespace: str, key: str) -> bool:
        bucket = self._data.get(namespace)
        if bucket is None or key not in bucket:
            return False
        del bucket[key]
        self._stats.deletes += 1
        return True

    async def list_keys(self, namespace: str) -> List[str]:
        return list(self._data.get(namespace, ()))

    async def list_namespaces(self) -> List[str]:
        return list(self._data.keys())

    async def delete_namespace(self, namespace: str) -> bool:
        return self._data.pop(namespace, None) is not None

    async def open_namespace(self, namespace: str) -> None:
        self._data.setdefault(namespace, OrderedDict())

    def memory_usage(self) -> int:
        """Get total payload size.

        Returns:
            Size in bytes
        """
        return sum(
            entry.size_bytes
            for bucket in self._data.values()
            for entry in bucket.values()
        )

    def __repr__(self) -> str:
        return f"MemoryStore(namespaces={len(self._data)})"


__all__ = ["MemoryStore"]
