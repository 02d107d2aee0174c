"""OfflineCache Config - Cache Manager Configuration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Configuration is an explicit object handed to a CacheManager at startup,
so independent managers (one per test, one per app) never share state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

from offlinecache_core.cache.tier import CacheTier, StrategyKind, TierRegistry
from offlinecache_core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60


@dataclass
class TierConfig:
    """Declarative tier configuration.

    Attributes:
        name: Tier name
        strategy: Strategy value (e.g. "cache-first")
        max_age_seconds: Maximum entry age
        max_items: Maximum entry count
        patterns: URL regular expressions
    """

    name: str
    strategy: str
    max_age_seconds: float
    max_items: int
    patterns: List[str] = field(default_factory=list)

    def build(self) -> CacheTier:
        """Compile into a CacheTier."""
        return CacheTier.build(
            name=self.name,
            strategy=self.strategy,
            max_age_seconds=self.max_age_seconds,
            max_items=self.max_items,
            patterns=self.patterns,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TierConfig":
        """Create from dictionary.

        Raises:
            ConfigurationError: On missing keys
        """
        try:
            return cls(
                name=data["name"],
                strategy=data["strategy"],
                max_age_seconds=float(data["max_age_seconds"]),
                max_items=int(data["max_items"]),
                patterns=list(data.get("patterns", [])),
            )
        except KeyError as e:
            raise ConfigurationError(f"Tier config missing {e.args[0]!r}") from e


def default_tiers() -> List[TierConfig]:
    """Default tier table.

    static: images, fonts, css/js (cache-first, 30 days, 100 items)
    dynamic: API calls (network-first, 24 hours, 50 items)
    pages: documents (stale-while-revalidate, 7 days, 50 items)
    fallback: real-time endpoints (network-only, no rules by default)
    """
    return [
        TierConfig(
            name="static",
            strategy=StrategyKind.CACHE_FIRST.value,
            max_age_seconds=30 * DAY,
            max_items=100,
            patterns=[
                r"\.(?:png|jpg|jpeg|svg|gif|webp|ico)$",
                r"\.(?:woff|woff2|ttf|eot)$",
                r"\.(?:css|js)$",
            ],
        ),
        TierConfig(
            name="dynamic",
            strategy=StrategyKind.NETWORK_FIRST.value,
            max_age_seconds=1 * DAY,
            max_items=50,
            patterns=[r"^https://api\.", r"/api/"],
        ),
        TierConfig(
            name="pages",
            strategy=StrategyKind.STALE_WHILE_REVALIDATE.value,
            max_age_seconds=7 * DAY,
            max_items=50,
            patterns=[r"/$", r"\.html$"],
        ),
        TierConfig(
            name="fallback",
            strategy=StrategyKind.NETWORK_ONLY.value,
            max_age_seconds=1 * DAY,
            max_items=0,
            patterns=[],
        ),
    ]


@dataclass
class CacheConfig:
    """Cache manager configuration.

    Attributes:
        app_id: Application identifier (namespace prefix)
        version: Deployed worker version
        tiers: Tier table
        network_timeout: NetworkFirst timeout in seconds
        precache_urls: URLs cached into the static tier on install
        offline_url: Offline document served for failed navigations
        origin: Only requests to this origin are cached (None for all)
        prefetch_tier: Tier seeded by prefetch
        message_tier: Tier seeded by CACHE_URLS messages
    """

    app_id: str = "offlinecache"
    version: str = "v1.0.0"
    tiers: List[TierConfig] = field(default_factory=default_tiers)
    network_timeout: float = 3.0
    precache_urls: List[str] = field(default_factory=list)
    offline_url: Optional[str] = None
    origin: Optional[str] = None
    prefetch_tier: str = "pages"
    message_tier: str = "dynamic"

    def __post_init__(self):
        if not self.app_id:
            raise ConfigurationError("app_id must not be empty")
        if not self.version:
            raise ConfigurationError("version must not be empty")
        if self.network_timeout <= 0:
            raise ConfigurationError("network_timeout must be > 0")

    def build_registry(self) -> TierRegistry:
        """Build the tier registry for this version.

        Raises:
            ConfigurationError: On duplicate or invalid tiers
        """
        registry = TierRegistry([tier.build() for tier in self.tiers])
        for name in (self.prefetch_tier, self.message_tier):
            if name not in registry:
                raise ConfigurationError(f"Unknown tier {name!r} referenced by config")
        if (self.precache_urls or self.offline_url) and "static" not in registry:
            raise ConfigurationError("precache_urls and offline_url require a 'static' tier")
        return registry

    def for_version(self, version: str) -> "CacheConfig":
        """Copy of this configuration for another deployed version."""
        return replace(self, version=version)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CacheConfig":
        """Create from a plain mapping (e.g. parsed JSON settings).

        Omitted keys keep their defaults; ``tiers`` replaces the whole
        default table when present.
        """
        known = {
            "app_id", "version", "network_timeout", "precache_urls",
            "offline_url", "origin", "prefetch_tier", "message_tier",
        }
        unknown = set(data) - known - {"tiers"}
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {key: data[key] for key in known if key in data}
        if "tiers" in data:
            kwargs["tiers"] = [TierConfig.from_dict(tier) for tier in data["tiers"]]
        return cls(**kwargs)


__all__ = ["CacheConfig", "TierConfig", "default_tiers"]
