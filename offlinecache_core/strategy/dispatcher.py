"""OfflineCache Dispatcher - Caching Strategy Execution.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from offlinecache_core.cache.entry import CacheEntry, ResourceRequest, ResourceSnapshot
from offlinecache_core.cache.namespace import NamespaceManager
from offlinecache_core.cache.tier import CacheTier, StrategyKind
from offlinecache_core.errors import CacheWriteFailure, ResourceUnavailable
from offlinecache_core.eviction.policy import EvictionEngine
from offlinecache_core.store.backend import StorageBackend
from offlinecache_core.strategy.fetcher import Fetcher

logger = logging.getLogger(__name__)


@dataclass
class DispatchStats:
    """Strategy dispatch statistics.

    Attributes:
        hits: Requests answered from cache
        misses: Cache lookups that found nothing
        network_fetches: Network fetches started
        network_failures: Network fetches that raised
        writes: Durable cache writes
        write_failures: Failed write attempts
        revalidations: Background revalidations started
    """

    hits: int = 0
    misses: int = 0
    network_fetches: int = 0
    network_failures: int = 0
    writes: int = 0
    write_failures: int = 0
    revalidations: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def reset(self) -> None:
        """Reset statistics."""
        self.hits = 0
        self.misses = 0
        self.network_fetches = 0
        self.network_failures = 0
        self.writes = 0
        self.write_failures = 0
        self.revalidations = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "network_fetches": self.network_fetches,
            "network_failures": self.network_failures,
            "writes": self.writes,
            "write_failures": self.write_failures,
            "revalidations": self.revalidations,
            "hit_rate": self.hit_rate,
        }


class StrategyDispatcher:
    """Executes one caching strategy per request.

    Strategies:
    - CacheFirst: cached copy without touching the network, else fetch and store
    - NetworkFirst: network raced against a timeout, cached copy on failure
    - StaleWhileRevalidate: cached copy now, refreshed in the background
    - CacheOnly: cached copy or ResourceUnavailable
    - NetworkOnly: always the network, cache untouched

    Cache writes are best-effort. They run as detached tasks so a caller
    torn down mid-request still leaves the cache warm, and every write
    passes through the eviction engine before it counts as durable.

    Example:
        dispatcher = StrategyDispatcher(store, namespaces, eviction, fetcher)
        tier = registry.resolve_tier(request.url)
        snapshot = await dispatcher.dispatch(request, tier)
    """

    def __init__(
        self,
        backend: StorageBackend,
        namespaces: NamespaceManager,
        eviction: EvictionEngine,
        fetcher: Fetcher,
        network_timeout: float = 3.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize dispatcher.

        Args:
            backend: Storage backend
            namespaces: Namespace naming for the owning version
            eviction: Eviction engine
            fetcher: Network fetcher
            network_timeout: NetworkFirst timeout in seconds
            clock: Time source in seconds
        """
        self._backend = backend
        self._namespaces = namespaces
        self._eviction = eviction
        self._fetcher = fetcher
        self.network_timeout = network_timeout
        self._clock = clock or time.time
        self._stats = DispatchStats()
        self._background: Set[asyncio.Task] = set()
        self._closed = False

        self._strategies: Dict[
            StrategyKind, Callable[[ResourceRequest, CacheTier], Awaitable[ResourceSnapshot]]
        ] = {
            StrategyKind.CACHE_FIRST: self._cache_first,
            StrategyKind.NETWORK_FIRST: self._network_first,
            StrategyKind.STALE_WHILE_REVALIDATE: self._stale_while_revalidate,
            StrategyKind.CACHE_ONLY: self._cache_only,
            StrategyKind.NETWORK_ONLY: self._network_only,
        }

    @property
    def fetcher(self) -> Fetcher:
        """Network fetcher used by strategies."""
        return self._fetcher

    async def dispatch(
        self,
        request: ResourceRequest,
        tier: Optional[CacheTier],
    ) -> ResourceSnapshot:
        """Satisfy a request with its tier's strategy.

        Args:
            request: Resource request
            tier: Resolved tier, or None for network-only passthrough

        Returns:
            Response snapshot

        Raises:
            ResourceUnavailable: When network and cache are both exhausted
            NetworkError: Under NetworkOnly or passthrough
        """
        if tier is None:
            return await self._fetch(request)

        logger.debug(f"{tier.strategy.value} [{tier.name}] {request.url}")
        return await self._strategies[tier.strategy](request, tier)

    async def _cache_first(self, request: ResourceRequest, tier: CacheTier) -> ResourceSnapshot:
        entry = await self.read(tier, request.key)
        if entry is not None:
            return entry.payload

        try:
            snapshot = await self._fetch(request)
        except Exception as e:
            raise ResourceUnavailable(request.url, "offline and not cached") from e

        if snapshot.ok:
            await self._write(tier, snapshot, request.key)
        return snapshot

    async def _network_first(self, request: ResourceRequest, tier: CacheTier) -> ResourceSnapshot:
        fetch_task = asyncio.ensure_future(self._fetch(request))
        try:
            done, _ = await asyncio.wait({fetch_task}, timeout=self.network_timeout)
            if not done:
                entry = await self.read(tier, request.key)
                if entry is not None:
                    logger.debug(f"Network timeout for {request.url}, serving cached copy")
                    self._spawn(self._refresh_from(fetch_task, tier, request.key))
                    return entry.payload
                # Nothing to fall back on; keep waiting for the network
                await asyncio.wait({fetch_task})
        except asyncio.CancelledError:
            fetch_task.cancel()
            raise

        try:
            snapshot = fetch_task.result()
        except Exception as e:
            entry = await self.read(tier, request.key)
            if entry is not None:
                logger.debug(f"Network failed for {request.url}, serving cached copy")
                return entry.payload
            raise ResourceUnavailable(request.url, "offline and not cached") from e

        if snapshot.ok:
            await self._write(tier, snapshot, request.key)
        return snapshot

    async def _stale_while_revalidate(
        self,
        request: ResourceRequest,
        tier: CacheTier,
    ) -> ResourceSnapshot:
        entry = await self.read(tier, request.key)
        if entry is not None:
            self._stats.revalidations += 1
            self._spawn(self._revalidate(request, tier))
            return entry.payload

        return await self._network_first(request, tier)

    async def _cache_only(self, request: ResourceRequest, tier: CacheTier) -> ResourceSnapshot:
        entry = await self.read(tier, request.key)
        if entry is None:
            raise ResourceUnavailable(request.url, "not cached")
        return entry.payload

    async def _network_only(self, request: ResourceRequest, tier: CacheTier) -> ResourceSnapshot:
        return await self._fetch(request)

    async def _fetch(self, request: ResourceRequest) -> ResourceSnapshot:
        self._stats.network_fetches += 1
        try:
            return await self._fetcher.fetch(request)
        except Exception:
            self._stats.network_failures += 1
            raise

    async def _revalidate(self, request: ResourceRequest, tier: CacheTier) -> None:
        """Refresh a cached entry; failures are logged, never raised."""
        try:
            snapshot = await self._fetch(request)
        except Exception as e:
            logger.warning(f"Background revalidation failed for {request.url}: {e}")
            return

        if snapshot.ok:
            await self.store(tier, snapshot, request.key)

    async def _refresh_from(self, fetch_task: "asyncio.Future[ResourceSnapshot]", tier: CacheTier, key: str) -> None:
        """Store the result of a fetch that lost the timeout race."""
        try:
            snapshot = await fetch_task
        except Exception as e:
            logger.warning(f"Late network response failed for {key}: {e}")
            return

        if snapshot.ok:
            await self.store(tier, snapshot, key)

    async def read(self, tier: CacheTier, key: str) -> Optional[CacheEntry]:
        """Read a live entry, expiring it if past its max age.

        Args:
            tier: Cache tier
            key: Resource key

        Returns:
            CacheEntry or None
        """
        namespace = self._namespaces.name_for(tier.name)
        try:
            entry = await self._backend.get(namespace, key)
            if entry is not None and await self._eviction.expire_if_stale(namespace, tier, entry):
                entry = None
        except Exception as e:
            logger.error(f"Cache read failed for {key} in {namespace}: {e}")
            entry = None

        if entry is None:
            self._stats.misses += 1
        else:
            self._stats.hits += 1
        return entry

    async def store(
        self,
        tier: CacheTier,
        snapshot: ResourceSnapshot,
        key: Optional[str] = None,
    ) -> bool:
        """Write a snapshot to a tier and enforce its bounds.

        A CacheWriteFailure triggers one forced eviction pass and one
        retry; a second failure drops the write.
        Writes are dropped once the dispatcher is closed.

        Args:
            tier: Cache tier
            snapshot: Response snapshot
            key: Resource key, defaults to the snapshot URL

        Returns:
            True if the write is durable
        """
        if self._closed:
            logger.debug(f"Dispatcher closed, dropping cache write for {key or snapshot.url}")
            return False

        namespace = self._namespaces.name_for(tier.name)
        entry = CacheEntry(key=key or snapshot.url, payload=snapshot, inserted_at=self._clock())

        try:
            await self._backend.put(namespace, entry)
        except CacheWriteFailure as e:
            self._stats.write_failures += 1
            logger.warning(f"Cache write failed for {entry.key}, retrying after eviction: {e}")
            try:
                await self._eviction.force(namespace, tier)
                await self._backend.put(namespace, entry)
            except Exception as retry_error:
                self._stats.write_failures += 1
                logger.warning(f"Dropped cache write for {entry.key}: {retry_error}")
                return False
        except Exception as e:
            self._stats.write_failures += 1
            logger.error(f"Dropped cache write for {entry.key}: {e}")
            return False

        try:
            await self._eviction.enforce(namespace, tier)
        except Exception as e:
            logger.error(f"Eviction pass failed for {namespace}: {e}")

        self._stats.writes += 1
        return True

    async def _write(self, tier: CacheTier, snapshot: ResourceSnapshot, key: str) -> None:
        """Store detached from the caller; cancellation does not stop the write."""
        await asyncio.shield(self._spawn(self.store(tier, snapshot, key)))

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def close(self) -> None:
        """Stop accepting cache writes; fetches still return responses."""
        self._closed = True

    @property
    def closed(self) -> bool:
        """Check if cache writes are being dropped."""
        return self._closed

    @property
    def pending(self) -> int:
        """Number of outstanding background tasks."""
        return len(self._background)

    async def drain(self) -> None:
        """Wait for all background revalidations and writes."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def get_stats(self) -> DispatchStats:
        """Get dispatch statistics."""
        return self._stats

    def __repr__(self) -> str:
        return f"StrategyDispatcher(namespace_prefix={self._namespaces.prefix!r})"


__all__ = ["StrategyDispatcher", "DispatchStats"]
