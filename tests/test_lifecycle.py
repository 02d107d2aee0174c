"""Tests for the worker lifecycle.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import asyncio

import pytest

from offlinecache_core.cache.entry import ResourceRequest
from offlinecache_core.config import CacheConfig
from offlinecache_core.errors import FeatureUnsupported
from offlinecache_core.lifecycle.controller import (
    UPDATE_AVAILABLE,
    UPDATE_EVENT,
    LifecycleController,
    LifecycleState,
)
from offlinecache_core.lifecycle.host import InProcessHost
from offlinecache_core.messaging.channel import InMemoryChannel
from offlinecache_core.worker.worker import CacheWorker


def make_controller(store, fetcher, host, **overrides):
    config = CacheConfig(app_id="darwin-mfc", version="v1.0.0", **overrides)
    channel = InMemoryChannel("to-client")

    def factory(version: str) -> CacheWorker:
        return CacheWorker(config.for_version(version), store, fetcher)

    return LifecycleController(host, factory, config.version, channel), channel


class TestRegistration:
    """Tests for registration."""

    @pytest.mark.asyncio
    async def test_first_registration_activates(self, store, fetcher):
        """Test the first version installs and activates immediately."""
        controller, _ = make_controller(store, fetcher, InProcessHost())

        handle = await controller.register()

        assert handle.is_active
        assert handle.history == [
            LifecycleState.REGISTERING,
            LifecycleState.INSTALLING,
            LifecycleState.INSTALLED,
            LifecycleState.ACTIVATING,
            LifecycleState.ACTIVATED,
        ]
        assert controller.active_worker is handle.worker
        assert "darwin-mfc-v1.0.0-static" in await store.list_namespaces()

    @pytest.mark.asyncio
    async def test_concurrent_registration(self, store, fetcher):
        """Test concurrent calls share one registration."""
        host = InProcessHost()
        controller, _ = make_controller(store, fetcher, host)

        first, second = await asyncio.gather(controller.register(), controller.register())
        third = await controller.register()

        assert first is second is third
        assert host.registration_calls == 1

    @pytest.mark.asyncio
    async def test_unsupported_host(self, store, fetcher):
        """Test an unsupported host yields None without raising."""
        host = InProcessHost(supported=False)
        controller, _ = make_controller(store, fetcher, host)

        assert await controller.register() is None
        assert host.registration_calls == 0

    @pytest.mark.asyncio
    async def test_rejected_then_retried(self, store, fetcher):
        """Test a rejected registration yields None and may be retried."""
        host = InProcessHost(reject_registration=True)
        controller, _ = make_controller(store, fetcher, host)

        assert await controller.register() is None
        assert controller.active is None

        host.reject_registration = False
        handle = await controller.register()
        assert handle is not None and handle.is_active

    @pytest.mark.asyncio
    async def test_unregister(self, store, fetcher):
        """Test unregistering the active version."""
        host = InProcessHost()
        controller, _ = make_controller(store, fetcher, host)
        handle = await controller.register()

        assert await controller.unregister()
        assert handle.is_redundant
        assert controller.active is None
        assert host.registered == set()
        assert not await controller.unregister()


class TestUpdates:
    """Tests for version updates."""

    @pytest.mark.asyncio
    async def test_update_scenario(self, store, fetcher):
        """Test v1.0.0 -> v1.0.1 waits, notifies, activates and cleans up."""
        host = InProcessHost(deployed="v1.0.0", clients=1)
        controller, channel = make_controller(store, fetcher, host)
        events = []
        channel.subscribe(events.append)

        old = await controller.register()
        fetcher.add("https://app.example/main.css", b"css")
        await old.worker.handle_fetch(ResourceRequest("https://app.example/main.css"))

        host.deploy("v1.0.1")
        new = await controller.check_for_update()

        assert new.state is LifecycleState.WAITING
        assert controller.active is old
        assert controller.waiting is new
        assert events == [{
            "name": UPDATE_EVENT,
            "detail": {"type": UPDATE_AVAILABLE},
            "version": "v1.0.1",
        }]
        assert "darwin-mfc-v1.0.0-static" in await store.list_namespaces()

        await controller.activate_waiting_version()

        assert new.is_active
        assert old.is_redundant
        assert controller.waiting is None
        namespaces = await store.list_namespaces()
        assert namespaces
        assert all(name.startswith("darwin-mfc-v1.0.1-") for name in namespaces)
        for name in namespaces:
            assert await store.count(name) == 0

    @pytest.mark.asyncio
    async def test_retired_worker_write_dropped(self, store, fetcher):
        """Test a fetch finishing on a retired worker does not recreate its namespace."""
        host = InProcessHost(clients=1)
        controller, _ = make_controller(store, fetcher, host)
        old = await controller.register()
        fetcher.add("https://app.example/main.css", b"css")
        gate = fetcher.gate("https://app.example/main.css")
        pending = asyncio.ensure_future(
            old.worker.handle_fetch(ResourceRequest("https://app.example/main.css"))
        )
        await asyncio.sleep(0.01)

        host.deploy("v1.0.1")
        await controller.check_for_update()
        await controller.activate_waiting_version()
        gate.set()
        response = await pending
        await old.worker.dispatcher.drain()

        assert response.body == b"css"
        assert old.worker.dispatcher.closed
        namespaces = await store.list_namespaces()
        assert namespaces
        assert all(name.startswith("darwin-mfc-v1.0.1-") for name in namespaces)

    @pytest.mark.asyncio
    async def test_no_clients_activates_immediately(self, store, fetcher):
        """Test an update activates when the old version controls no clients."""
        host = InProcessHost(clients=0)
        controller, channel = make_controller(store, fetcher, host)
        events = []
        channel.subscribe(events.append)
        await controller.register()

        host.deploy("v1.0.1")
        new = await controller.check_for_update()

        assert new.is_active
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_clients_released(self, store, fetcher):
        """Test a waiting version activates once clients are released."""
        host = InProcessHost(clients=2)
        controller, _ = make_controller(store, fetcher, host)
        await controller.register()
        host.deploy("v1.0.1")
        new = await controller.check_for_update()

        await controller.clients_released()
        assert new.state is LifecycleState.WAITING

        host.release_clients()
        await controller.clients_released()
        assert new.is_active

    @pytest.mark.asyncio
    async def test_up_to_date(self, store, fetcher):
        """Test no update when the deployed version is active."""
        controller, channel = make_controller(store, fetcher, InProcessHost())
        events = []
        channel.subscribe(events.append)
        await controller.register()

        assert await controller.check_for_update() is None
        assert events == []

    @pytest.mark.asyncio
    async def test_newer_deployment_supersedes_waiting(self, store, fetcher):
        """Test a newer deployment replaces the waiting version."""
        host = InProcessHost()
        controller, _ = make_controller(store, fetcher, host)
        await controller.register()

        host.deploy("v1.0.1")
        superseded = await controller.check_for_update()
        host.deploy("v1.0.2")
        latest = await controller.check_for_update()

        assert superseded.is_redundant
        assert controller.waiting is latest

        await controller.activate_waiting_version()
        namespaces = await store.list_namespaces()
        assert all(name.startswith("darwin-mfc-v1.0.2-") for name in namespaces)

    @pytest.mark.asyncio
    async def test_repeated_check_returns_waiting(self, store, fetcher):
        """Test checking again does not reinstall the waiting version."""
        host = InProcessHost()
        controller, _ = make_controller(store, fetcher, host)
        await controller.register()
        host.deploy("v1.0.1")

        first = await controller.check_for_update()
        second = await controller.check_for_update()

        assert first is second

    @pytest.mark.asyncio
    async def test_activate_without_waiting(self, store, fetcher):
        """Test activating with nothing waiting is a no-op."""
        controller, _ = make_controller(store, fetcher, InProcessHost())
        handle = await controller.register()

        await controller.activate_waiting_version()

        assert controller.active is handle
        assert handle.is_active

    @pytest.mark.asyncio
    async def test_check_before_registration(self, store, fetcher):
        """Test update checks are skipped before registration."""
        host = InProcessHost()
        controller, _ = make_controller(store, fetcher, host)
        host.deploy("v1.0.1")

        assert await controller.check_for_update() is None
        assert host.registration_calls == 0


class TestInProcessHost:
    """Tests for InProcessHost."""

    @pytest.mark.asyncio
    async def test_unsupported_register(self):
        """Test registering on an unsupported host raises FeatureUnsupported."""
        with pytest.raises(FeatureUnsupported):
            await InProcessHost(supported=False).register("v1.0.0")

    @pytest.mark.asyncio
    async def test_controlled_clients(self):
        """Test only the controlling version counts clients."""
        host = InProcessHost(clients=2)
        await host.register("v1.0.0")
        await host.register("v1.0.1")

        assert host.controlled_clients("v1.0.0") == 2
        assert host.controlled_clients("v1.0.1") == 0

        host.claim("v1.0.1")
        assert host.controlled_clients("v1.0.1") == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
