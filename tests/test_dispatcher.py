"""Tests for the strategy dispatcher.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import asyncio

import pytest

from offlinecache_core.cache.entry import ResourceRequest, ResourceSnapshot
from offlinecache_core.cache.tier import CacheTier
from offlinecache_core.errors import NetworkError, ResourceUnavailable

from conftest import FlakyStore, SlowStore

URL = "https://app.example/resource"


def tier_for(strategy: str, max_items: int = 50) -> CacheTier:
    return CacheTier.build("dynamic", strategy, 86400, max_items)


def namespace() -> str:
    return "test-v1-dynamic"


async def seed(dispatcher, tier, body: bytes = b"cached", url: str = URL) -> None:
    assert await dispatcher.store(tier, ResourceSnapshot(url=url, body=body))


class TestCacheFirst:
    """Tests for CacheFirst."""

    @pytest.mark.asyncio
    async def test_hit_skips_network(self, make_dispatcher, fetcher):
        """Test a cached entry is served without a network call."""
        tier = tier_for("cache-first")
        dispatcher = make_dispatcher()
        await seed(dispatcher, tier)

        result = await dispatcher.dispatch(ResourceRequest(URL), tier)

        assert result.body == b"cached"
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_miss_fetches_and_stores(self, make_dispatcher, fetcher, store):
        """Test a miss fetches once and later requests hit the cache."""
        tier = tier_for("cache-first")
        dispatcher = make_dispatcher(store)
        fetcher.add(URL, b"fresh")

        first = await dispatcher.dispatch(ResourceRequest(URL), tier)
        second = await dispatcher.dispatch(ResourceRequest(URL), tier)

        assert first.body == second.body == b"fresh"
        assert fetcher.calls == [URL]
        assert await store.list_keys(namespace()) == [URL]

    @pytest.mark.asyncio
    async def test_offline_miss(self, make_dispatcher, fetcher):
        """Test offline and uncached raises ResourceUnavailable."""
        fetcher.offline = True
        dispatcher = make_dispatcher()

        with pytest.raises(ResourceUnavailable) as exc_info:
            await dispatcher.dispatch(ResourceRequest(URL), tier_for("cache-first"))

        assert exc_info.value.url == URL

    @pytest.mark.asyncio
    async def test_error_status_not_cached(self, make_dispatcher, fetcher, store):
        """Test non-2xx responses are returned but never stored."""
        fetcher.add(URL, b"boom", status=500)
        dispatcher = make_dispatcher(store)

        result = await dispatcher.dispatch(ResourceRequest(URL), tier_for("cache-first"))

        assert result.status == 500
        assert await store.count(namespace()) == 0


class TestNetworkFirst:
    """Tests for NetworkFirst."""

    @pytest.mark.asyncio
    async def test_online_updates_cache(self, make_dispatcher, fetcher, store):
        """Test the network response is returned and replaces the cache."""
        tier = tier_for("network-first")
        dispatcher = make_dispatcher(store)
        await seed(dispatcher, tier, b"old")
        fetcher.add(URL, b"new")

        result = await dispatcher.dispatch(ResourceRequest(URL), tier)

        assert result.body == b"new"
        assert (await store.get(namespace(), URL)).payload.body == b"new"

    @pytest.mark.asyncio
    async def test_offline_falls_back(self, make_dispatcher, fetcher):
        """Test network failure serves the cached copy."""
        tier = tier_for("network-first")
        dispatcher = make_dispatcher()
        await seed(dispatcher, tier)
        fetcher.offline = True

        result = await dispatcher.dispatch(ResourceRequest(URL), tier)

        assert result.body == b"cached"

    @pytest.mark.asyncio
    async def test_offline_miss(self, make_dispatcher, fetcher):
        """Test network failure without cache raises ResourceUnavailable."""
        fetcher.offline = True
        dispatcher = make_dispatcher()

        with pytest.raises(ResourceUnavailable):
            await dispatcher.dispatch(ResourceRequest(URL), tier_for("network-first"))

    @pytest.mark.asyncio
    async def test_timeout_serves_cache_and_refreshes(self, make_dispatcher, fetcher, store):
        """Test a slow network yields the cached copy, then the late response is stored."""
        tier = tier_for("network-first")
        dispatcher = make_dispatcher(store, network_timeout=0.01)
        await seed(dispatcher, tier, b"old")
        fetcher.add(URL, b"late")
        gate = fetcher.gate(URL)

        result = await dispatcher.dispatch(ResourceRequest(URL), tier)
        assert result.body == b"old"

        gate.set()
        await dispatcher.drain()
        assert (await store.get(namespace(), URL)).payload.body == b"late"

    @pytest.mark.asyncio
    async def test_timeout_without_cache_waits(self, make_dispatcher, fetcher):
        """Test a slow network with nothing cached keeps waiting."""
        tier = tier_for("network-first")
        dispatcher = make_dispatcher(network_timeout=0.01)
        fetcher.add(URL, b"slow")
        gate = fetcher.gate(URL)

        task = asyncio.ensure_future(dispatcher.dispatch(ResourceRequest(URL), tier))
        await asyncio.sleep(0.05)
        assert not task.done()

        gate.set()
        result = await task
        assert result.body == b"slow"

    @pytest.mark.asyncio
    async def test_cancel_aborts_fetch(self, make_dispatcher, fetcher):
        """Test cancelling the caller cancels the in-flight fetch."""
        tier = tier_for("network-first")
        dispatcher = make_dispatcher(network_timeout=1.0)
        fetcher.gate(URL)

        task = asyncio.ensure_future(dispatcher.dispatch(ResourceRequest(URL), tier))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)
        assert fetcher.cancelled == [URL]


class TestStaleWhileRevalidate:
    """Tests for StaleWhileRevalidate."""

    @pytest.mark.asyncio
    async def test_serves_stale_then_refreshes(self, make_dispatcher, fetcher, store):
        """Test the cached copy is served and replaced in the background."""
        tier = tier_for("stale-while-revalidate")
        dispatcher = make_dispatcher(store)
        await seed(dispatcher, tier, b"v1")
        fetcher.add(URL, b"v2")

        result = await dispatcher.dispatch(ResourceRequest(URL), tier)
        assert result.body == b"v1"

        await dispatcher.drain()
        assert (await store.get(namespace(), URL)).payload.body == b"v2"
        assert dispatcher.get_stats().revalidations == 1

    @pytest.mark.asyncio
    async def test_background_failure_is_silent(self, make_dispatcher, fetcher, store):
        """Test a failed revalidation never surfaces and keeps the entry."""
        tier = tier_for("stale-while-revalidate")
        dispatcher = make_dispatcher(store)
        await seed(dispatcher, tier, b"v1")
        fetcher.offline = True

        result = await dispatcher.dispatch(ResourceRequest(URL), tier)
        await dispatcher.drain()

        assert result.body == b"v1"
        assert (await store.get(namespace(), URL)).payload.body == b"v1"
        assert dispatcher.get_stats().network_failures == 1

    @pytest.mark.asyncio
    async def test_miss_uses_network(self, make_dispatcher, fetcher, store):
        """Test a miss fetches, stores and returns the response."""
        tier = tier_for("stale-while-revalidate")
        dispatcher = make_dispatcher(store)
        fetcher.add(URL, b"fresh")

        result = await dispatcher.dispatch(ResourceRequest(URL), tier)

        assert result.body == b"fresh"
        assert await store.list_keys(namespace()) == [URL]


class TestCacheOnly:
    """Tests for CacheOnly."""

    @pytest.mark.asyncio
    async def test_never_uses_network(self, make_dispatcher, fetcher):
        """Test hits and misses never call the network."""
        tier = tier_for("cache-only")
        dispatcher = make_dispatcher()
        await seed(dispatcher, tier)

        assert (await dispatcher.dispatch(ResourceRequest(URL), tier)).body == b"cached"
        with pytest.raises(ResourceUnavailable):
            await dispatcher.dispatch(ResourceRequest("https://app.example/missing"), tier)
        assert fetcher.calls == []


class TestNetworkOnly:
    """Tests for NetworkOnly."""

    @pytest.mark.asyncio
    async def test_never_touches_cache(self, make_dispatcher, fetcher, store):
        """Test the response is not stored."""
        fetcher.add(URL, b"live")
        dispatcher = make_dispatcher(store)

        result = await dispatcher.dispatch(ResourceRequest(URL), tier_for("network-only"))

        assert result.body == b"live"
        assert await store.list_namespaces() == []

    @pytest.mark.asyncio
    async def test_network_error_propagates(self, make_dispatcher, fetcher):
        """Test network failure is raised to the caller."""
        fetcher.offline = True
        dispatcher = make_dispatcher()

        with pytest.raises(NetworkError):
            await dispatcher.dispatch(ResourceRequest(URL), tier_for("network-only"))

    @pytest.mark.asyncio
    async def test_passthrough_without_tier(self, make_dispatcher, fetcher, store):
        """Test requests with no tier go straight to the network."""
        fetcher.add(URL, b"live")
        dispatcher = make_dispatcher(store)

        result = await dispatcher.dispatch(ResourceRequest(URL), None)

        assert result.body == b"live"
        assert await store.list_namespaces() == []


class TestWrites:
    """Tests for cache write handling."""

    @pytest.mark.asyncio
    async def test_retry_after_forced_eviction(self, make_dispatcher):
        """Test one write failure triggers forced eviction and a retry."""
        store = FlakyStore(fail_writes=1)
        dispatcher = make_dispatcher(store)

        assert await dispatcher.store(tier_for("cache-first"), ResourceSnapshot(url=URL))
        assert store.put_attempts == 2
        assert await store.list_keys(namespace()) == [URL]

    @pytest.mark.asyncio
    async def test_second_failure_drops_write(self, make_dispatcher, fetcher):
        """Test a failed retry drops the write but still returns the response."""
        store = FlakyStore(fail_writes=2)
        dispatcher = make_dispatcher(store)
        fetcher.add(URL, b"fresh")

        result = await dispatcher.dispatch(ResourceRequest(URL), tier_for("cache-first"))

        assert result.body == b"fresh"
        assert store.put_attempts == 2
        assert await store.count(namespace()) == 0
        assert dispatcher.get_stats().write_failures == 2

    @pytest.mark.asyncio
    async def test_write_survives_cancellation(self, make_dispatcher, fetcher):
        """Test a caller cancelled mid-write still leaves the entry cached."""
        store = SlowStore()
        dispatcher = make_dispatcher(store)
        fetcher.add(URL, b"fresh")

        task = asyncio.ensure_future(dispatcher.dispatch(ResourceRequest(URL), tier_for("cache-first")))
        await store.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        store.release.set()
        await dispatcher.drain()
        assert (await store.get(namespace(), URL)).payload.body == b"fresh"

    @pytest.mark.asyncio
    async def test_closed_dispatcher_drops_writes(self, make_dispatcher, fetcher, store):
        """Test a closed dispatcher serves responses without caching them."""
        dispatcher = make_dispatcher(store)
        fetcher.add(URL, b"fresh")
        dispatcher.close()

        result = await dispatcher.dispatch(ResourceRequest(URL), tier_for("cache-first"))

        assert result.body == b"fresh"
        assert not await dispatcher.store(tier_for("cache-first"), ResourceSnapshot(url=URL))
        assert await store.list_namespaces() == []
        assert dispatcher.get_stats().writes == 0


class TestStats:
    """Tests for dispatch statistics."""

    @pytest.mark.asyncio
    async def test_hit_rate(self, make_dispatcher, fetcher):
        """Test hits and misses are counted."""
        tier = tier_for("cache-first")
        dispatcher = make_dispatcher()
        fetcher.add(URL)

        await dispatcher.dispatch(ResourceRequest(URL), tier)
        await dispatcher.dispatch(ResourceRequest(URL), tier)

        stats = dispatcher.get_stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_rate == 0.5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
