"""Prefetch module - Bulk tier seeding."""

from offlinecache_core.prefetch.manager import (
    PrefetchConfig,
    PrefetchManager,
    PrefetchStats,
)

__all__ = ["PrefetchConfig", "PrefetchManager", "PrefetchStats"]
