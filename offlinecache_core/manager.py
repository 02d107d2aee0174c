"""OfflineCache Manager - Application-Facing Facade.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

import httpx

from offlinecache_core.cache.entry import ResourceRequest, ResourceSnapshot
from offlinecache_core.cache.namespace import NamespaceManager
from offlinecache_core.config import CacheConfig
from offlinecache_core.connectivity.monitor import ConnectivityMonitor
from offlinecache_core.errors import MessageDeliveryFailure
from offlinecache_core.inspection.inspector import CacheInspector, format_cache_size
from offlinecache_core.interception.transport import OfflineCacheTransport
from offlinecache_core.lifecycle.controller import (
    UPDATE_EVENT,
    LifecycleController,
    RegistrationHandle,
)
from offlinecache_core.lifecycle.host import InProcessHost, WorkerHost
from offlinecache_core.messaging.channel import InMemoryChannel, Message
from offlinecache_core.prefetch.manager import PrefetchConfig, PrefetchStats
from offlinecache_core.store.backend import StorageBackend
from offlinecache_core.store.memory import MemoryStore
from offlinecache_core.strategy.fetcher import Fetcher, HttpxFetcher
from offlinecache_core.worker.worker import CacheWorker

logger = logging.getLogger(__name__)


class CacheManager:
    """Offline caching for one application.

    Example:
        manager = CacheManager(CacheConfig(app_id="notes", version="v1.0.0"))
        await manager.register_caching_process()

        async with httpx.AsyncClient(transport=manager.transport()) as client:
            response = await client.get("https://app.example/styles/app.css")

        manager.on_update_available(lambda event: print(event["version"]))
        manager.on_connection_change(lambda online: print("online" if online else "offline"))
        print(manager.format_cache_size(await manager.get_cache_size()))
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        backend: Optional[StorageBackend] = None,
        fetcher: Optional[Fetcher] = None,
        host: Optional[WorkerHost] = None,
        clock: Optional[Callable[[], float]] = None,
        online: bool = True,
        prefetch_config: Optional[PrefetchConfig] = None,
    ):
        """Initialize manager.

        Args:
            config: Cache configuration
            backend: Storage backend (in-memory when omitted)
            fetcher: Network fetcher (httpx when omitted)
            host: Worker host (in-process when omitted)
            clock: Time source in seconds
            online: Initial connectivity
            prefetch_config: Prefetch configuration
        """
        self.config = config or CacheConfig()
        self.backend = backend or MemoryStore()
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or HttpxFetcher()
        self.host = host or InProcessHost(deployed=self.config.version)
        self._clock = clock
        self._prefetch_config = prefetch_config

        # Fail fast on a bad tier table
        self.config.build_registry()

        self.client_channel = InMemoryChannel("to-client")
        self.connectivity = ConnectivityMonitor(online=online)
        self.inspector = CacheInspector(self.backend)
        self.lifecycle = LifecycleController(
            self.host,
            self._create_worker,
            self.config.version,
            self.client_channel,
        )
        self._standby: Optional[CacheWorker] = None

    def _create_worker(self, version: str) -> CacheWorker:
        return CacheWorker(
            self.config.for_version(version),
            self.backend,
            self.fetcher,
            clock=self._clock,
            prefetch_config=self._prefetch_config,
        )

    @property
    def active_worker(self) -> Optional[CacheWorker]:
        """Worker controlling the cache, if registered."""
        return self.lifecycle.active_worker

    # Lifecycle

    async def register_caching_process(self) -> Optional[RegistrationHandle]:
        """Register, install and activate the caching worker.

        Idempotent. Never raises.

        Returns:
            Registration handle, or None if unsupported or rejected
        """
        return await self.lifecycle.register()

    async def unregister_caching_process(self) -> bool:
        """Unregister the caching worker."""
        return await self.lifecycle.unregister()

    async def check_for_update(self) -> None:
        """Check the host for a newer deployed version."""
        await self.lifecycle.check_for_update()

    async def activate_waiting_version(self) -> None:
        """Activate a waiting update. A no-op when nothing waits."""
        await self.lifecycle.activate_waiting_version()

    async def clients_released(self) -> None:
        """Notify that clients controlled by the old version have closed."""
        await self.lifecycle.clients_released()

    def on_update_available(self, callback: Callable[[Message], Any]) -> Callable[[], None]:
        """Subscribe to update-available events.

        Returns:
            Unsubscribe function
        """

        def handler(message: Message) -> Any:
            if message.get("name") == UPDATE_EVENT:
                return callback(message)
            return None

        return self.client_channel.subscribe(handler)

    async def send_message(self, message: Message) -> bool:
        """Post a control message to the active worker.

        Replies are discarded; use ``request_message`` to read them.

        Returns:
            False if there was no worker to receive it
        """
        worker = self.active_worker
        if worker is None:
            logger.warning(f"No active caching worker for message {message.get('type')!r}")
            return False
        return await worker.channel.post(message)

    async def request_message(self, message: Message) -> Any:
        """Send a control message to the active worker and return its reply.

        Example:
            reply = await manager.request_message({"type": GET_CACHE_SIZE})
            size = reply["size"]

        Raises:
            MessageDeliveryFailure: If there is no worker to receive it
        """
        worker = self.active_worker
        if worker is None:
            raise MessageDeliveryFailure(f"No active caching worker for message {message.get('type')!r}")
        return await worker.channel.request(message)

    # Caches

    async def clear_all_caches(self) -> None:
        """Delete every cache namespace."""
        namespaces = NamespaceManager(self.backend, self.config.app_id, self.config.version)
        deleted = await namespaces.clear_all()
        logger.info(f"Cleared {deleted} cache namespaces")

    async def get_cache_size(self) -> int:
        """Total payload bytes across all namespaces (0 on failure)."""
        return await self.inspector.get_cache_size()

    @staticmethod
    def format_cache_size(size_bytes: int) -> str:
        """Render a byte count, e.g. "1.5 KB"."""
        return format_cache_size(size_bytes)

    async def prefetch_urls(self, urls: Iterable[str]) -> PrefetchStats:
        """Warm the prefetch tier. Never raises.

        Args:
            urls: URLs to cache

        Returns:
            Prefetch statistics
        """
        urls = list(urls)
        worker = self.active_worker or self._standby_worker()
        try:
            return await worker.cache_urls(urls, self.config.prefetch_tier)
        except Exception as e:
            logger.error(f"Prefetch failed: {e}")
            return PrefetchStats(total=len(urls), failed=len(urls))

    def _standby_worker(self) -> CacheWorker:
        if self._standby is None:
            self._standby = self._create_worker(self.config.version)
        return self._standby

    # Connectivity

    def is_offline(self) -> bool:
        """Check the last observed connectivity."""
        return self.connectivity.is_offline()

    def on_connection_change(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Subscribe to online/offline transitions.

        Returns:
            Unsubscribe function
        """
        return self.connectivity.subscribe(callback)

    def set_online(self, online: bool) -> bool:
        """Report a connectivity observation."""
        return self.connectivity.update(online)

    # Interception

    async def fetch(self, request: ResourceRequest) -> ResourceSnapshot:
        """Satisfy a request through the active worker.

        Without an active worker the request goes straight to the network.

        Raises:
            ResourceUnavailable: When neither network nor cache can answer
            NetworkError: When an uncached request fails on the network
        """
        worker = self.active_worker
        if worker is None:
            return await self.fetcher.fetch(request)
        return await worker.handle_fetch(request)

    def transport(self, wrapped: Optional[httpx.AsyncBaseTransport] = None) -> OfflineCacheTransport:
        """httpx transport routing GET requests through ``fetch``."""
        return OfflineCacheTransport(self.fetch, wrapped=wrapped)

    async def close(self) -> None:
        """Let pending writes finish and release resources."""
        for worker in (self.active_worker, self._standby):
            if worker is not None:
                await worker.dispatcher.drain()
        if self._owns_fetcher:
            await self.fetcher.close()
        await self.backend.close()

    async def __aenter__(self) -> "CacheManager":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"CacheManager(app_id={self.config.app_id!r}, lifecycle={self.lifecycle!r})"


__all__ = ["CacheManager"]
