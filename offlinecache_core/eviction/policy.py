"""OfflineCache Eviction Policy - Age and Count Bounds per Tier.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from offlinecache_core.cache.entry import CacheEntry
from offlinecache_core.cache.tier import CacheTier
from offlinecache_core.store.backend import StorageBackend

logger = logging.getLogger(__name__)


@dataclass
class EvictionStats:
    """Eviction engine statistics.

    Attributes:
        evictions: Entries removed by the count bound
        expirations: Entries removed by the age bound
        passes: Enforcement passes run
        forced_passes: Forced passes run before a write retry
    """

    evictions: int = 0
    expirations: int = 0
    passes: int = 0
    forced_passes: int = 0

    @property
    def removed(self) -> int:
        """Get total removed entries."""
        return self.evictions + self.expirations


class EvictionEngine:
    """Enforces per-tier age and count bounds.

    Two independent rules per tier:
    - Age: entries with ``now - inserted_at > max_age_seconds`` are purged
    - Count: oldest entries by insertion order are evicted until the
      tier holds ``max_items``

    A pass reads the count and trims, so a concurrent insert can push a
    tier over its bound until the next pass.

    Example:
        engine = EvictionEngine(store)
        await store.put(namespace, entry)
        await engine.enforce(namespace, tier)
    """

    def __init__(
        self,
        backend: StorageBackend,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize engine.

        Args:
            backend: Storage backend
            clock: Time source in seconds
        """
        self._backend = backend
        self._clock = clock or time.time
        self._stats = EvictionStats()

    def is_expired(self, entry: CacheEntry, tier: CacheTier) -> bool:
        """Check an entry against the tier's age bound."""
        return entry.age_seconds(self._clock()) > tier.max_age_seconds

    async def expire_if_stale(
        self,
        namespace: str,
        tier: CacheTier,
        entry: CacheEntry,
    ) -> bool:
        """Expire an entry found on read if it is past its max age.

        A stale read purges every expired entry of the tier, not only
        the one that was read.

        Returns:
            True if the entry was expired
        """
        if not self.is_expired(entry, tier):
            return False
        removed = await self.purge_expired(namespace, tier)
        logger.debug(f"Expired {entry.key} from {namespace} on read ({removed} purged)")
        return True

    async def purge_expired(self, namespace: str, tier: CacheTier) -> int:
        """Remove entries older than the tier's max age.

        Returns:
            Number removed
        """
        expired = [
            key async for key, entry in self._backend.entries(namespace)
            if self.is_expired(entry, tier)
        ]
        count = 0
        for key in expired:
            if await self._backend.delete(namespace, key):
                count += 1
        self._stats.expirations += count
        if count:
            logger.debug(f"Expired {count} entries from {namespace}")
        return count

    async def trim(self, namespace: str, max_items: int) -> int:
        """Evict oldest entries until the namespace holds max_items.

        Returns:
            Number evicted
        """
        keys = await self._backend.list_keys(namespace)
        excess = len(keys) - max_items
        if excess <= 0:
            return 0

        count = 0
        for key in keys[:excess]:
            if await self._backend.delete(namespace, key):
                count += 1
        self._stats.evictions += count
        logger.debug(f"Trimmed {count} items from {namespace}")
        return count

    async def enforce(self, namespace: str, tier: CacheTier) -> int:
        """Run both rules after a write.

        Returns:
            Number of entries removed
        """
        self._stats.passes += 1
        removed = await self.purge_expired(namespace, tier)
        removed += await self.trim(namespace, tier.max_items)
        return removed

    async def force(self, namespace: str, tier: CacheTier) -> int:
        """Free space before retrying a failed write.

        Purges expired entries and trims the tier to half its capacity.

        Returns:
            Number of entries removed
        """
        self._stats.forced_passes += 1
        removed = await self.purge_expired(namespace, tier)
        removed += await self.trim(namespace, tier.max_items // 2)
        logger.info(f"Forced eviction freed {removed} entries from {namespace}")
        return removed

    def get_stats(self) -> EvictionStats:
        """Get eviction statistics."""
        return self._stats


__all__ = ["EvictionEngine", "EvictionStats"]
