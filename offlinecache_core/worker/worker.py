"""OfflineCache Worker - The Cache-Owning Process of One Version.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Iterable, List, Optional
from urllib.parse import urlsplit

from offlinecache_core.cache.entry import ResourceRequest, ResourceSnapshot
from offlinecache_core.cache.namespace import NamespaceManager
from offlinecache_core.config import CacheConfig
from offlinecache_core.errors import ConfigurationError, ResourceUnavailable
from offlinecache_core.eviction.policy import EvictionEngine
from offlinecache_core.inspection.inspector import CacheInspector
from offlinecache_core.messaging.channel import InMemoryChannel, Message, MessageChannel
from offlinecache_core.prefetch.manager import PrefetchConfig, PrefetchManager, PrefetchStats
from offlinecache_core.store.backend import StorageBackend
from offlinecache_core.strategy.dispatcher import StrategyDispatcher
from offlinecache_core.strategy.fetcher import Fetcher

logger = logging.getLogger(__name__)

SKIP_WAITING = "SKIP_WAITING"
CACHE_URLS = "CACHE_URLS"
CLEAR_CACHE = "CLEAR_CACHE"
GET_CACHE_SIZE = "GET_CACHE_SIZE"


class CacheWorker:
    """Cache-owning worker for one deployed version.

    Owns the version's tier registry, eviction engine and dispatcher, and
    only ever writes to its own ``{app_id}-{version}-*`` namespaces. The
    application reaches it through ``channel`` (control messages) and
    ``handle_fetch`` (intercepted requests).

    Control messages:
    - SKIP_WAITING: activate this waiting version now
    - CACHE_URLS: cache ``urls`` into the message tier
    - CLEAR_CACHE: delete every namespace
    - GET_CACHE_SIZE: reply ``{"size": bytes}``
    """

    def __init__(
        self,
        config: CacheConfig,
        backend: StorageBackend,
        fetcher: Fetcher,
        clock: Optional[Callable[[], float]] = None,
        channel: Optional[MessageChannel] = None,
        prefetch_config: Optional[PrefetchConfig] = None,
    ):
        """Initialize worker.

        Args:
            config: Configuration of this version
            backend: Shared storage backend
            fetcher: Network fetcher
            clock: Time source in seconds
            channel: Control channel; an in-memory one is created when omitted
            prefetch_config: Prefetch configuration
        """
        self.config = config
        self.version = config.version
        self.registry = config.build_registry()
        self.namespaces = NamespaceManager(backend, config.app_id, config.version)
        self.eviction = EvictionEngine(backend, clock or time.time)
        self.dispatcher = StrategyDispatcher(
            backend,
            self.namespaces,
            self.eviction,
            fetcher,
            network_timeout=config.network_timeout,
            clock=clock,
        )
        self.prefetcher = PrefetchManager(self.dispatcher, prefetch_config)
        self.inspector = CacheInspector(backend)

        self.channel = channel or InMemoryChannel(f"worker-{config.version}")
        self._unsubscribe = self.channel.subscribe(self.handle_message)
        self._skip_waiting: Optional[Callable[[], Awaitable[None]]] = None

    async def install(self) -> PrefetchStats:
        """Create namespaces and precache critical resources.

        Precache failures are isolated per URL and never fail the install.

        Returns:
            Precache statistics
        """
        await self.namespaces.open(self.registry.names())

        urls = list(self.config.precache_urls)
        if self.config.offline_url and self.config.offline_url not in urls:
            urls.append(self.config.offline_url)

        stats = await self.prefetcher.prefetch(urls, self.registry.get("static")) if urls else PrefetchStats()
        logger.info(f"Worker {self.version} installed ({stats.cached}/{len(urls)} precached)")
        return stats

    async def activate(self) -> List[str]:
        """Take ownership: delete every other version's namespaces.

        Returns:
            Deleted namespace names
        """
        deleted = await self.namespaces.cleanup_stale(self.registry.names())
        logger.info(f"Worker {self.version} activated, removed {len(deleted)} stale namespaces")
        return deleted

    def intercepts(self, request: ResourceRequest) -> bool:
        """Check whether a request is eligible for caching."""
        if not request.is_cacheable_method:
            return False

        url = urlsplit(request.url)
        if url.scheme not in ("http", "https"):
            return False

        if self.config.origin:
            origin = urlsplit(self.config.origin)
            if (url.scheme, url.netloc) != (origin.scheme, origin.netloc):
                return False

        return True

    async def handle_fetch(self, request: ResourceRequest) -> ResourceSnapshot:
        """Satisfy an intercepted request.

        Raises:
            ResourceUnavailable: When the tier's strategy is exhausted and
                no offline document applies
        """
        if not self.intercepts(request):
            return await self.dispatcher.dispatch(request, None)

        tier = self.registry.resolve_tier(request.url)
        try:
            return await self.dispatcher.dispatch(request, tier)
        except ResourceUnavailable:
            fallback = await self._offline_document(request)
            if fallback is None:
                raise
            logger.info(f"Serving offline document for {request.url}")
            return fallback

    async def _offline_document(self, request: ResourceRequest) -> Optional[ResourceSnapshot]:
        if not request.navigate or not self.config.offline_url:
            return None
        static = self.registry.get("static")
        entry = await self.dispatcher.read(static, self.config.offline_url)
        return entry.payload if entry is not None else None

    async def cache_urls(self, urls: Iterable[str], tier_name: Optional[str] = None) -> PrefetchStats:
        """Cache URLs into a tier with per-URL isolation.

        Raises:
            ConfigurationError: If the tier does not exist
        """
        tier_name = tier_name or self.config.prefetch_tier
        tier = self.registry.get(tier_name)
        if tier is None:
            raise ConfigurationError(f"Unknown cache tier: {tier_name!r}")
        return await self.prefetcher.prefetch(urls, tier)

    def on_skip_waiting(self, handler: Optional[Callable[[], Awaitable[None]]]) -> None:
        """Set the handler run when SKIP_WAITING arrives."""
        self._skip_waiting = handler

    async def handle_message(self, message: Message) -> Any:
        """Handle a control message from the application.

        Args:
            message: Message dictionary with a ``type`` key

        Returns:
            Reply for request-style messages, else None
        """
        kind = message.get("type")

        if kind == SKIP_WAITING:
            if self._skip_waiting is None:
                logger.debug(f"Worker {self.version} is not waiting, ignoring {kind}")
                return None
            await self._skip_waiting()
            return None

        if kind == CACHE_URLS:
            return await self.cache_urls(message.get("urls") or [], self.config.message_tier)

        if kind == CLEAR_CACHE:
            return await self.namespaces.clear_all()

        if kind == GET_CACHE_SIZE:
            return {"size": await self.inspector.get_cache_size()}

        logger.debug(f"Worker {self.version} ignoring unknown message {kind!r}")
        return None

    async def terminate(self) -> None:
        """Stop receiving messages, drop later writes and let pending ones finish."""
        self._unsubscribe()
        self._skip_waiting = None
        self.dispatcher.close()
        await self.dispatcher.drain()

    def __repr__(self) -> str:
        return f"CacheWorker(version={self.version!r}, tiers={self.registry.names()!r})"


__all__ = [
    "CacheWorker",
    "SKIP_WAITING",
    "CACHE_URLS",
    "CLEAR_CACHE",
    "GET_CACHE_SIZE",
]
