"""OfflineCache Prefetch - Seeding Tiers for Offline Availability.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from offlinecache_core.cache.entry import ResourceRequest
from offlinecache_core.cache.tier import CacheTier
from offlinecache_core.strategy.dispatcher import StrategyDispatcher

logger = logging.getLogger(__name__)


@dataclass
class PrefetchConfig:
    """Configuration for prefetching.

    Attributes:
        max_concurrency: Parallel fetches
        skip_existing: Skip URLs already cached in the tier
    """

    max_concurrency: int = 4
    skip_existing: bool = False


@dataclass
class PrefetchStats:
    """Prefetch operation statistics.

    Attributes:
        total: URLs requested
        cached: URLs fetched and stored
        failed: URLs that could not be fetched or stored
        skipped: URLs already cached
        duration_seconds: Total duration
        started_at: Start time
        completed_at: Completion time
    """

    total: int = 0
    cached: int = 0
    failed: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Get success rate."""
        attempted = self.cached + self.failed
        return self.cached / attempted if attempted > 0 else 0.0


class PrefetchManager:
    """Bulk-seeds a tier with per-URL error isolation.

    Each URL is fetched and stored individually. A failure is logged and
    skipped, so the tier ends up holding every reachable URL rather than
    nothing at all.

    Example:
        prefetcher = PrefetchManager(dispatcher)
        stats = await prefetcher.prefetch(["/", "/doencas", "/medicamentos"], pages_tier)
    """

    def __init__(
        self,
        dispatcher: StrategyDispatcher,
        config: Optional[PrefetchConfig] = None,
    ):
        """Initialize prefetcher.

        Args:
            dispatcher: Dispatcher owning the target namespaces
            config: Prefetch configuration
        """
        self._dispatcher = dispatcher
        self.config = config or PrefetchConfig()
        self._stats = PrefetchStats()

    async def prefetch(self, urls: Iterable[str], tier: CacheTier) -> PrefetchStats:
        """Fetch and store URLs into a tier.

        Never raises for individual URL failures.

        Args:
            urls: URLs to cache
            tier: Target tier

        Returns:
            Prefetch statistics
        """
        urls = list(dict.fromkeys(urls))
        stats = PrefetchStats(total=len(urls), started_at=datetime.now())
        self._stats = stats

        logger.info(f"Prefetching {len(urls)} URLs into {tier.name}")

        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrency))

        async def run(url: str) -> None:
            async with semaphore:
                await self._prefetch_one(url, tier, stats)

        await asyncio.gather(*(run(url) for url in urls))

        stats.completed_at = datetime.now()
        stats.duration_seconds = (stats.completed_at - stats.started_at).total_seconds()

        logger.info(
            f"Prefetch completed: {stats.cached} cached, "
            f"{stats.failed} failed, {stats.skipped} skipped"
        )
        return stats

    async def _prefetch_one(self, url: str, tier: CacheTier, stats: PrefetchStats) -> None:
        try:
            if self.config.skip_existing and await self._dispatcher.read(tier, url) is not None:
                stats.skipped += 1
                return

            snapshot = await self._dispatcher.fetcher.fetch(ResourceRequest(url=url))
            if not snapshot.ok:
                stats.failed += 1
                logger.warning(f"Failed to prefetch {url}: HTTP {snapshot.status}")
                return

            if await self._dispatcher.store(tier, snapshot, url):
                stats.cached += 1
            else:
                stats.failed += 1
                logger.warning(f"Failed to store prefetched {url}")

        except Exception as e:
            stats.failed += 1
            logger.warning(f"Failed to prefetch {url}: {e}")

    def get_stats(self) -> PrefetchStats:
        """Get statistics of the last prefetch."""
        return self._stats


__all__ = ["PrefetchManager", "PrefetchConfig", "PrefetchStats"]
