"""OfflineCache Storage Backend - Abstract Namespaced Storage Interface.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, List, Optional, Tuple

from offlinecache_core.cache.entry import CacheEntry

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """Storage backend configuration.

    Attributes:
        name: Backend name
        max_bytes: Total payload quota across all namespaces (None for unbounded)
    """

    name: str = "storage"
    max_bytes: Optional[int] = None


@dataclass
class StorageStats:
    """Storage backend statistics.

    Attributes:
        reads: Number of read operations
        writes: Number of write operations
        deletes: Number of delete operations
        errors: Number of errors
    """

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def record_error(self, error: str) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = error
        self.last_error_at = datetime.now()


class StorageBackend(ABC):
    """Abstract storage for cache namespaces.

    A backend holds any number of namespaces, each an independent
    key -> CacheEntry map. Keys are listed in insertion order; replacing
    a key moves it to the end.

    Implementations:
    - MemoryStore: In-process dictionaries
    - RedisStore: Redis hashes and sorted sets

    All operations are coroutines.
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        """Initialize backend.

        Args:
            config: Storage configuration
        """
        self.config = config or StorageConfig()
        self._stats = StorageStats()

    @abstractmethod
    async def get(self, namespace: str, key: str) -> Optional[CacheEntry]:
        """Get entry by key.

        Args:
            namespace: Namespace name
            key: Resource key

        Returns:
            CacheEntry or None
        """
        pass

    @abstractmethod
    async def put(self, namespace: str, entry: CacheEntry) -> None:
        """Store entry, creating the namespace if needed.

        Args:
            namespace: Namespace name
            entry: Cache entry

        Raises:
            CacheWriteFailure: On quota or backend error
        """
        pass

    @abstractmethod
    async def delete(self, namespace: str, key: str) -> bool:
        """Delete entry.

        Args:
            namespace: Namespace name
            key: Resource key

        Returns:
            True if deleted
        """
        pass

    @abstractmethod
    async def list_keys(self, namespace: str) -> List[str]:
        """List keys in insertion order.

        Args:
            namespace: Namespace name

        Returns:
            Keys, oldest first
        """
        pass

    @abstractmethod
    async def list_namespaces(self) -> List[str]:
        """List existing namespaces.

        Returns:
            Namespace names
        """
        pass

    @abstractmethod
    async def delete_namespace(self, namespace: str) -> bool:
        """Delete a namespace and all its entries.

        Args:
            namespace: Namespace name

        Returns:
            True if the namespace existed
        """
        pass

    async def open_namespace(self, namespace: str) -> None:
        """Ensure a namespace exists, even while empty."""
        return None

    async def has_namespace(self, namespace: str) -> bool:
        """Check if namespace exists."""
        return namespace in await self.list_namespaces()

    async def count(self, namespace: str) -> int:
        """Get entry count of a namespace."""
        return len(await self.list_keys(namespace))

    async def entries(self, namespace: str) -> AsyncIterator[Tuple[str, CacheEntry]]:
        """Iterate entries in insertion order.

        Args:
            namespace: Namespace name

        Yields:
            (key, entry) tuples
        """
        for key in await self.list_keys(namespace):
            entry = await self.get(namespace, key)
            if entry is not None:
                yield key, entry

    async def close(self) -> None:
        """Release backend resources."""
        return None

    def get_stats(self) -> StorageStats:
        """Get storage statistics.

        Returns:
            StorageStats instance
        """
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats = StorageStats()


__all__ = ["StorageBackend", "StorageConfig", "StorageStats"]
