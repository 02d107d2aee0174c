"""Shared fixtures for OfflineCache tests.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import asyncio
from typing import Dict, List, Optional, Set

import pytest

from offlinecache_core.cache.entry import CacheEntry, ResourceRequest, ResourceSnapshot
from offlinecache_core.cache.namespace import NamespaceManager
from offlinecache_core.errors import CacheWriteFailure, NetworkError
from offlinecache_core.eviction.policy import EvictionEngine
from offlinecache_core.store.memory import MemoryStore
from offlinecache_core.strategy.dispatcher import StrategyDispatcher
from offlinecache_core.strategy.fetcher import Fetcher


class ManualClock:
    """Clock advanced explicitly by tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubFetcher(Fetcher):
    """Scripted network.

    Unknown URLs answer 404. URLs in ``failures`` (or every URL while
    ``offline``) raise NetworkError. A URL with a gate blocks until the
    gate's event is set.
    """

    def __init__(self):
        self.responses: Dict[str, ResourceSnapshot] = {}
        self.failures: Set[str] = set()
        self.gates: Dict[str, asyncio.Event] = {}
        self.offline = False
        self.calls: List[str] = []
        self.cancelled: List[str] = []

    def add(self, url: str, body: bytes = b"ok", status: int = 200, headers: Optional[Dict[str, str]] = None) -> None:
        self.responses[url] = ResourceSnapshot(url=url, status=status, headers=headers or {}, body=body)

    def gate(self, url: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[url] = event
        return event

    async def fetch(self, request: ResourceRequest) -> ResourceSnapshot:
        self.calls.append(request.url)

        gate = self.gates.get(request.url)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                self.cancelled.append(request.url)
                raise

        if self.offline or request.url in self.failures:
            raise NetworkError(request.url)
        if request.url not in self.responses:
            return ResourceSnapshot(url=request.url, status=404, body=b"not found")
        return self.responses[request.url]


class FlakyStore(MemoryStore):
    """MemoryStore whose next ``fail_writes`` puts raise CacheWriteFailure."""

    def __init__(self, fail_writes: int = 0):
        super().__init__()
        self.fail_writes = fail_writes
        self.put_attempts = 0

    async def put(self, namespace: str, entry: CacheEntry) -> None:
        self.put_attempts += 1
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise CacheWriteFailure(f"quota exceeded for {entry.key}")
        await super().put(namespace, entry)


class SlowStore(MemoryStore):
    """MemoryStore whose puts block until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def put(self, namespace: str, entry: CacheEntry) -> None:
        self.started.set()
        await self.release.wait()
        await super().put(namespace, entry)


@pytest.fixture
def clock():
    """Manual clock."""
    return ManualClock()


@pytest.fixture
def fetcher():
    """Scripted network."""
    return StubFetcher()


@pytest.fixture
def store():
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def make_dispatcher(fetcher, clock):
    """Factory for dispatchers over the "test-v1" namespaces."""

    def factory(backend=None, network_timeout: float = 0.05) -> StrategyDispatcher:
        backend = backend if backend is not None else MemoryStore()
        namespaces = NamespaceManager(backend, "test", "v1")
        return StrategyDispatcher(
            backend,
            namespaces,
            EvictionEngine(backend, clock),
            fetcher,
            network_timeout=network_timeout,
            clock=clock,
        )

    return factory
