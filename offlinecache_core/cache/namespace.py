"""OfflineCache Namespace - Version-Qualified Cache Namespaces.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A namespace is named ``{app_id}-{version}-{tier}``. Two versions never
share a namespace, so a version bump starts from an empty tier set and
the previous version's namespaces are orphaned until activation cleanup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from offlinecache_core.store.backend import StorageBackend

logger = logging.getLogger(__name__)


def namespace_name(app_id: str, version: str, tier_name: str) -> str:
    """Build a namespace name.

    Args:
        app_id: Application identifier
        version: Worker version
        tier_name: Tier name

    Returns:
        ``{app_id}-{version}-{tier_name}``
    """
    return f"{app_id}-{version}-{tier_name}"


def version_prefix(app_id: str, version: str) -> str:
    """Get the prefix shared by every namespace of one version."""
    return f"{app_id}-{version}-"


@dataclass(frozen=True)
class NamespaceStats:
    """Footprint of one namespace."""

    name: str
    entry_count: int = 0
    size_bytes: int = 0


class NamespaceManager:
    """Namespaces of one application version over a storage backend.

    Provides:
    - Namespace naming per tier
    - Discovery of this application's namespaces
    - Cleanup of namespaces owned by other versions
    - Per-namespace statistics

    Example:
        manager = NamespaceManager(store, "darwin-mfc", "v1.0.1")
        manager.name_for("pages")          # "darwin-mfc-v1.0.1-pages"
        await manager.cleanup_stale(["static", "dynamic", "pages"])
    """

    def __init__(self, backend: StorageBackend, app_id: str, version: str):
        """Initialize manager.

        Args:
            backend: Storage backend
            app_id: Application identifier
            version: Version owning these namespaces
        """
        self._backend = backend
        self.app_id = app_id
        self.version = version

    @property
    def prefix(self) -> str:
        """Prefix of this version's namespaces."""
        return version_prefix(self.app_id, self.version)

    def name_for(self, tier_name: str) -> str:
        """Get namespace name for a tier."""
        return namespace_name(self.app_id, self.version, tier_name)

    def owns(self, namespace: str, tier_names: Iterable[str]) -> bool:
        """Check if a namespace belongs to this version's tiers."""
        return namespace in {self.name_for(name) for name in tier_names}

    def is_application_namespace(self, namespace: str) -> bool:
        """Check if a namespace belongs to this application (any version)."""
        return namespace.startswith(f"{self.app_id}-")

    async def open(self, tier_names: Iterable[str]) -> List[str]:
        """Create this version's namespaces.

        Returns:
            Created namespace names
        """
        names = [self.name_for(name) for name in tier_names]
        for name in names:
            await self._backend.open_namespace(name)
        return names

    async def list(self) -> List[str]:
        """List this application's namespaces across all versions."""
        return [
            name for name in await self._backend.list_namespaces()
            if self.is_application_namespace(name)
        ]

    async def cleanup_stale(self, tier_names: Iterable[str]) -> List[str]:
        """Delete every application namespace this version does not own.

        A failure deleting one namespace is logged and skipped.

        Args:
            tier_names: Tiers of the current version

        Returns:
            Deleted namespace names
        """
        tier_names = list(tier_names)
        deleted = []

        for name in await self.list():
            if self.owns(name, tier_names):
                continue
            try:
                if await self._backend.delete_namespace(name):
                    deleted.append(name)
                    logger.info(f"Deleted stale cache namespace {name}")
            except Exception as e:
                logger.error(f"Failed to delete cache namespace {name}: {e}")

        return deleted

    async def clear_all(self) -> int:
        """Delete every namespace in the backend regardless of owner.

        Returns:
            Number of namespaces deleted
        """
        count = 0
        for name in await self._backend.list_namespaces():
            if await self._backend.delete_namespace(name):
                count += 1
        return count

    async def stats(self, namespace: str) -> NamespaceStats:
        """Get footprint of a namespace."""
        count = 0
        size = 0
        async for _, entry in self._backend.entries(namespace):
            count += 1
            size += entry.size_bytes
        return NamespaceStats(name=namespace, entry_count=count, size_bytes=size)

    async def get_all_stats(self) -> Dict[str, NamespaceStats]:
        """Get stats for all of this application's namespaces."""
        return {name: await self.stats(name) for name in await self.list()}

    def __repr__(self) -> str:
        return f"NamespaceManager(prefix={self.prefix!r})"


def parse_namespace(name: str, app_id: str) -> Optional[tuple]:
    """Split a namespace into (version, tier_name).

    The tier name is the last dash-separated segment, so versions may
    contain dashes.

    Returns:
        (version, tier_name), or None if not an application namespace
    """
    prefix = f"{app_id}-"
    if not name.startswith(prefix):
        return None
    rest = name[len(prefix):]
    version, sep, tier_name = rest.rpartition("-")
    if not sep or not version or not tier_name:
        return None
    return version, tier_name


__all__ = [
    "NamespaceManager",
    "NamespaceStats",
    "namespace_name",
    "parse_namespace",
    "version_prefix",
]
