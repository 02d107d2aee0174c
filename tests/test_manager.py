"""Tests for the CacheManager facade.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pytest

from offlinecache_core.cache.entry import ResourceRequest
from offlinecache_core.config import CacheConfig
from offlinecache_core.errors import ConfigurationError, MessageDeliveryFailure
from offlinecache_core.lifecycle.controller import UPDATE_EVENT
from offlinecache_core.lifecycle.host import InProcessHost
from offlinecache_core.manager import CacheManager
from offlinecache_core.worker.worker import CLEAR_CACHE, GET_CACHE_SIZE


def make_manager(store, fetcher, host=None, **overrides) -> CacheManager:
    config = CacheConfig(app_id="darwin-mfc", version="v1.0.0", **overrides)
    return CacheManager(config, backend=store, fetcher=fetcher, host=host or InProcessHost())


class TestRegistration:
    """Tests for registration through the facade."""

    @pytest.mark.asyncio
    async def test_register_idempotent(self, store, fetcher):
        """Test registering twice returns the same handle."""
        manager = make_manager(store, fetcher)

        first = await manager.register_caching_process()
        second = await manager.register_caching_process()

        assert first is second
        assert manager.active_worker is first.worker

    @pytest.mark.asyncio
    async def test_unsupported(self, store, fetcher):
        """Test an unsupported host yields None."""
        manager = make_manager(store, fetcher, host=InProcessHost(supported=False))

        assert await manager.register_caching_process() is None
        assert not await manager.unregister_caching_process()

    def test_invalid_config(self, store, fetcher):
        """Test a bad tier table fails at construction."""
        with pytest.raises(ConfigurationError):
            make_manager(store, fetcher, message_tier="media")

    @pytest.mark.asyncio
    async def test_update_flow(self, store, fetcher):
        """Test update notification and activation through the facade."""
        host = InProcessHost(deployed="v1.0.0")
        manager = make_manager(store, fetcher, host=host)
        updates = []
        manager.on_update_available(updates.append)
        await manager.register_caching_process()

        host.deploy("v1.0.1")
        await manager.check_for_update()

        assert [event["version"] for event in updates] == ["v1.0.1"]
        assert updates[0]["name"] == UPDATE_EVENT

        await manager.activate_waiting_version()
        assert manager.active_worker.version == "v1.0.1"

    @pytest.mark.asyncio
    async def test_update_listener_unsubscribe(self, store, fetcher):
        """Test update listeners can unsubscribe."""
        host = InProcessHost()
        manager = make_manager(store, fetcher, host=host)
        updates = []
        unsubscribe = manager.on_update_available(updates.append)
        await manager.register_caching_process()

        unsubscribe()
        host.deploy("v1.0.1")
        await manager.check_for_update()

        assert updates == []


class TestFetch:
    """Tests for request handling."""

    @pytest.mark.asyncio
    async def test_passthrough_before_registration(self, store, fetcher):
        """Test requests go to the network until a worker is active."""
        fetcher.add("https://app.example/logo.png", b"png")
        manager = make_manager(store, fetcher)

        result = await manager.fetch(ResourceRequest("https://app.example/logo.png"))

        assert result.body == b"png"
        assert await store.list_namespaces() == []

    @pytest.mark.asyncio
    async def test_cached_after_registration(self, store, fetcher):
        """Test an active worker caches and serves offline."""
        fetcher.add("https://app.example/logo.png", b"png")
        manager = make_manager(store, fetcher)
        await manager.register_caching_process()

        await manager.fetch(ResourceRequest("https://app.example/logo.png"))
        fetcher.offline = True
        result = await manager.fetch(ResourceRequest("https://app.example/logo.png"))

        assert result.body == b"png"


class TestCaches:
    """Tests for cache management."""

    @pytest.mark.asyncio
    async def test_size_and_clear(self, store, fetcher):
        """Test size reporting and clearing every namespace."""
        fetcher.add("https://app.example/logo.png", b"x" * 1536)
        manager = make_manager(store, fetcher)
        await manager.register_caching_process()
        await manager.fetch(ResourceRequest("https://app.example/logo.png"))

        size = await manager.get_cache_size()
        assert size == 1536
        assert manager.format_cache_size(size) == "1.5 KB"

        await manager.clear_all_caches()
        assert await store.list_namespaces() == []
        assert await manager.get_cache_size() == 0

    @pytest.mark.asyncio
    async def test_prefetch_urls(self, store, fetcher):
        """Test prefetch caches reachable pages and never raises."""
        fetcher.add("https://app.example/")
        fetcher.failures.add("https://app.example/doencas")
        manager = make_manager(store, fetcher)
        await manager.register_caching_process()

        stats = await manager.prefetch_urls(["https://app.example/", "https://app.example/doencas"])

        assert stats.cached == 1
        assert stats.failed == 1
        assert await store.list_keys("darwin-mfc-v1.0.0-pages") == ["https://app.example/"]

    @pytest.mark.asyncio
    async def test_prefetch_before_registration(self, store, fetcher):
        """Test prefetch works without an active worker."""
        fetcher.add("https://app.example/")
        manager = make_manager(store, fetcher)

        stats = await manager.prefetch_urls(["https://app.example/"])

        assert stats.cached == 1
        assert await store.list_keys("darwin-mfc-v1.0.0-pages") == ["https://app.example/"]

    @pytest.mark.asyncio
    async def test_send_message(self, store, fetcher):
        """Test control messages reach the active worker."""
        manager = make_manager(store, fetcher)

        assert not await manager.send_message({"type": CLEAR_CACHE})

        await manager.register_caching_process()
        assert await manager.send_message({"type": CLEAR_CACHE})
        assert await store.list_namespaces() == []

    @pytest.mark.asyncio
    async def test_request_message(self, store, fetcher):
        """Test a control message reply is returned to the caller."""
        fetcher.add("https://app.example/logo.png", b"x" * 512)
        manager = make_manager(store, fetcher)

        with pytest.raises(MessageDeliveryFailure):
            await manager.request_message({"type": GET_CACHE_SIZE})

        await manager.register_caching_process()
        await manager.fetch(ResourceRequest("https://app.example/logo.png"))

        assert await manager.request_message({"type": GET_CACHE_SIZE}) == {"size": 512}


class TestConnectivity:
    """Tests for connectivity through the facade."""

    def test_connection_changes(self, store, fetcher):
        """Test offline state and change notifications."""
        manager = make_manager(store, fetcher)
        seen = []
        unsubscribe = manager.on_connection_change(seen.append)

        manager.set_online(False)
        assert manager.is_offline()
        manager.set_online(False)
        unsubscribe()
        manager.set_online(True)

        assert seen == [False]
        assert not manager.is_offline()


class TestClose:
    """Tests for shutdown."""

    @pytest.mark.asyncio
    async def test_close_drains_writes(self, store, fetcher):
        """Test closing waits for background revalidation."""
        fetcher.add("https://app.example/", b"v1")
        async with make_manager(store, fetcher) as manager:
            await manager.register_caching_process()
            await manager.fetch(ResourceRequest("https://app.example/"))
            fetcher.add("https://app.example/", b"v2")
            await manager.fetch(ResourceRequest("https://app.example/"))

        entry = await store.get("darwin-mfc-v1.0.0-pages", "https://app.example/")
        assert entry.payload.body == b"v2"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
