"""OfflineCache Inspector - Cache Footprint Reporting.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Dict

from offlinecache_core.store.backend import StorageBackend

logger = logging.getLogger(__name__)

SIZE_UNITS = ("Bytes", "KB", "MB", "GB")
SIZE_BASE = 1024


def format_cache_size(size_bytes: int) -> str:
    """Render a byte count with base-1024 units.

    The unit is the largest one not exceeding the value (capped at GB);
    the number is rounded to two decimals with trailing zeros dropped.

    Examples:
        format_cache_size(0)     # "0 Bytes"
        format_cache_size(1024)  # "1 KB"
        format_cache_size(1536)  # "1.5 KB"

    Raises:
        ValueError: If size_bytes is negative
    """
    if size_bytes < 0:
        raise ValueError(f"Cache size cannot be negative: {size_bytes}")
    if size_bytes == 0:
        return "0 Bytes"

    unit = 0
    while unit < len(SIZE_UNITS) - 1 and size_bytes >= SIZE_BASE ** (unit + 1):
        unit += 1

    value = round(size_bytes / SIZE_BASE ** unit, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[unit]}"


class CacheInspector:
    """Aggregates payload sizes across every namespace in a backend.

    Example:
        inspector = CacheInspector(store)
        total = await inspector.get_cache_size()
        print(format_cache_size(total))
    """

    def __init__(self, backend: StorageBackend):
        self._backend = backend

    async def namespace_sizes(self) -> Dict[str, int]:
        """Get payload bytes per namespace."""
        sizes: Dict[str, int] = {}
        for namespace in await self._backend.list_namespaces():
            total = 0
            async for _, entry in self._backend.entries(namespace):
                total += entry.size_bytes
            sizes[namespace] = total
        return sizes

    async def get_cache_size(self) -> int:
        """Sum payload bytes of every entry in every namespace.

        Returns:
            Total bytes, or 0 if the backend could not be read
        """
        try:
            return sum((await self.namespace_sizes()).values())
        except Exception as e:
            logger.error(f"Cache size calculation failed: {e}")
            return 0

    @staticmethod
    def format_cache_size(size_bytes: int) -> str:
        """Render a byte count; see format_cache_size()."""
        return format_cache_size(size_bytes)


__all__ = ["CacheInspector", "format_cache_size", "SIZE_UNITS"]
