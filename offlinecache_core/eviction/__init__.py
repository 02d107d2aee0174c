"""Eviction module - Per-tier age and count bounds."""

from offlinecache_core.eviction.policy import (
    EvictionEngine,
    EvictionStats,
)

__all__ = [
    "EvictionEngine",
    "EvictionStats",
]
