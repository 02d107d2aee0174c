"""Cache module - Tiers, namespaces and entries.

This module provides tier resolution, versioned namespace naming and the
entry types stored by the backends.
"""

from offlinecache_core.cache.entry import (
    CacheEntry,
    ResourceRequest,
    ResourceSnapshot,
)
from offlinecache_core.cache.namespace import (
    NamespaceManager,
    NamespaceStats,
    namespace_name,
    parse_namespace,
)
from offlinecache_core.cache.tier import (
    TIER_PRIORITY,
    CacheTier,
    StrategyKind,
    TierRegistry,
)

__all__ = [
    "CacheEntry",
    "ResourceRequest",
    "ResourceSnapshot",
    "NamespaceManager",
    "NamespaceStats",
    "namespace_name",
    "parse_namespace",
    "CacheTier",
    "StrategyKind",
    "TierRegistry",
    "TIER_PRIORITY",
]
