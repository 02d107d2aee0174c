"""Inspection module - Cache footprint reporting."""

from offlinecache_core.inspection.inspector import CacheInspector, format_cache_size

__all__ = ["CacheInspector", "format_cache_size"]
