"""OfflineCache - Offline-Capable Resource Caching.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A resource caching layer between one application and one origin with:
- Named cache tiers resolved from URL rules
- Five caching strategies (cache-first, network-first,
  stale-while-revalidate, cache-only, network-only)
- Age and count bounded eviction per tier
- Versioned install/activate/update lifecycle of the caching worker
- Connectivity observation and bulk prefetch
- Memory and Redis storage backends

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                       OfflineCache System                       │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │   Manager   │  │  Lifecycle  │  │ Connectivity│   CLIENT    │
    │  │   facade    │  │  controller │  │   monitor   │   LAYER     │
    │  └──────┬──────┘  └──────┬──────┘  └─────────────┘             │
    │         │   messages     │                                      │
    │  ┌──────┴────────────────┴───────────────────────┐             │
    │  │              Cache Worker (per version)        │             │
    │  │   ┌──────┐  ┌──────────┐  ┌────────┐          │   WORKER    │
    │  │   │Tiers │  │Dispatcher│  │Eviction│          │   LAYER     │
    │  │   └──────┘  └──────────┘  └────────┘          │             │
    │  └──────────────────────┬────────────────────────┘             │
    │                         │                                       │
    │  ┌──────────────────────┴────────────────────────┐             │
    │  │      Namespaces {app_id}-{version}-{tier}      │             │
    │  │   ┌────────┐  ┌────────┐                       │   STORAGE   │
    │  │   │ Memory │  │ Redis  │                       │   LAYER     │
    │  │   └────────┘  └────────┘                       │             │
    │  └──────────────────────────────────────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    from offlinecache_core import CacheConfig, CacheManager

    manager = CacheManager(CacheConfig(app_id="notes", version="v1.0.0"))
    await manager.register_caching_process()

    # Route application traffic through the cache
    async with httpx.AsyncClient(transport=manager.transport()) as client:
        response = await client.get("https://app.example/index.html")

    # Persistent storage with Redis
    from offlinecache_core import RedisStore, RedisConfig

    manager = CacheManager(config, backend=RedisStore(RedisConfig(host="localhost")))

    # Updates
    manager.on_update_available(lambda event: notify_user(event["version"]))
    await manager.check_for_update()
    await manager.activate_waiting_version()
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from offlinecache_core.errors import (
    OfflineCacheError,
    ConfigurationError,
    FeatureUnsupported,
    RegistrationFailure,
    ResourceUnavailable,
    CacheWriteFailure,
    MessageDeliveryFailure,
    NetworkError,
)
from offlinecache_core.cache.entry import (
    CacheEntry,
    ResourceRequest,
    ResourceSnapshot,
)
from offlinecache_core.cache.tier import (
    CacheTier,
    StrategyKind,
    TierRegistry,
)
from offlinecache_core.cache.namespace import (
    NamespaceManager,
    namespace_name,
)
from offlinecache_core.config import (
    CacheConfig,
    TierConfig,
    default_tiers,
)
from offlinecache_core.store.backend import (
    StorageBackend,
    StorageStats,
)
from offlinecache_core.store.memory import MemoryStore
from offlinecache_core.store.redis import RedisStore, RedisConfig
from offlinecache_core.eviction.policy import (
    EvictionEngine,
    EvictionStats,
)
from offlinecache_core.strategy.fetcher import Fetcher, HttpxFetcher
from offlinecache_core.strategy.dispatcher import (
    StrategyDispatcher,
    DispatchStats,
)
from offlinecache_core.connectivity.monitor import ConnectivityMonitor
from offlinecache_core.messaging.channel import MessageChannel, InMemoryChannel
from offlinecache_core.prefetch.manager import (
    PrefetchManager,
    PrefetchConfig,
    PrefetchStats,
)
from offlinecache_core.inspection.inspector import (
    CacheInspector,
    format_cache_size,
)
from offlinecache_core.worker.worker import CacheWorker
from offlinecache_core.lifecycle.controller import (
    LifecycleController,
    LifecycleState,
    RegistrationHandle,
)
from offlinecache_core.lifecycle.host import (
    WorkerHost,
    InProcessHost,
    HttpManifestHost,
)
from offlinecache_core.interception.transport import OfflineCacheTransport
from offlinecache_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
)
from offlinecache_core.manager import CacheManager

__all__ = [
    # Facade
    "CacheManager",
    "CacheConfig",
    "TierConfig",
    "default_tiers",
    # Errors
    "OfflineCacheError",
    "ConfigurationError",
    "FeatureUnsupported",
    "RegistrationFailure",
    "ResourceUnavailable",
    "CacheWriteFailure",
    "MessageDeliveryFailure",
    "NetworkError",
    # Cache
    "CacheEntry",
    "ResourceRequest",
    "ResourceSnapshot",
    "CacheTier",
    "StrategyKind",
    "TierRegistry",
    "NamespaceManager",
    "namespace_name",
    # Storage
    "StorageBackend",
    "StorageStats",
    "MemoryStore",
    "RedisStore",
    "RedisConfig",
    # Eviction
    "EvictionEngine",
    "EvictionStats",
    # Strategies
    "Fetcher",
    "HttpxFetcher",
    "StrategyDispatcher",
    "DispatchStats",
    # Worker and lifecycle
    "CacheWorker",
    "LifecycleController",
    "LifecycleState",
    "RegistrationHandle",
    "WorkerHost",
    "InProcessHost",
    "HttpManifestHost",
    # Client services
    "ConnectivityMonitor",
    "MessageChannel",
    "InMemoryChannel",
    "PrefetchManager",
    "PrefetchConfig",
    "PrefetchStats",
    "CacheInspector",
    "format_cache_size",
    "OfflineCacheTransport",
    # Protocol
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
]
