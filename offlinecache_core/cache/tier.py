"""OfflineCache Tiers - Named Cache Tiers and Tier Resolution.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Pattern, Tuple

from offlinecache_core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class StrategyKind(Enum):
    """Caching strategies."""

    CACHE_FIRST = "cache-first"
    NETWORK_FIRST = "network-first"
    STALE_WHILE_REVALIDATE = "stale-while-revalidate"
    CACHE_ONLY = "cache-only"
    NETWORK_ONLY = "network-only"

    @classmethod
    def parse(cls, value: "str | StrategyKind") -> "StrategyKind":
        """Parse a strategy from its value or member name.

        Raises:
            ConfigurationError: If the strategy is unknown
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise ConfigurationError(f"Unknown caching strategy: {value!r}")


# Resolution order for the well-known tiers
TIER_PRIORITY = ("static", "dynamic", "pages", "fallback")


@dataclass(frozen=True)
class CacheTier:
    """A named, bounded cache category.

    Attributes:
        name: Tier name (namespace suffix)
        strategy: Caching strategy for matched requests
        max_age_seconds: Maximum entry age
        max_items: Maximum entry count
        match_rules: Compiled URL patterns
    """

    name: str
    strategy: StrategyKind
    max_age_seconds: float
    max_items: int
    match_rules: Tuple[Pattern[str], ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Tier name must not be empty")
        if self.max_items < 0:
            raise ConfigurationError(f"Tier {self.name!r}: max_items must be >= 0")
        if self.max_age_seconds <= 0:
            raise ConfigurationError(f"Tier {self.name!r}: max_age_seconds must be > 0")

    @classmethod
    def build(
        cls,
        name: str,
        strategy: "str | StrategyKind",
        max_age_seconds: float,
        max_items: int,
        patterns: Optional[List["str | Pattern[str]"]] = None,
    ) -> "CacheTier":
        """Build a tier, compiling string patterns.

        Raises:
            ConfigurationError: On invalid strategy or pattern
        """
        rules = []
        for pattern in patterns or []:
            if isinstance(pattern, str):
                try:
                    pattern = re.compile(pattern)
                except re.error as e:
                    raise ConfigurationError(
                        f"Tier {name!r}: invalid pattern {pattern!r}: {e}"
                    ) from e
            rules.append(pattern)
        return cls(
            name=name,
            strategy=StrategyKind.parse(strategy),
            max_age_seconds=float(max_age_seconds),
            max_items=int(max_items),
            match_rules=tuple(rules),
        )

    def matches(self, url: str) -> bool:
        """Check whether any rule matches the URL."""
        return any(rule.search(url) for rule in self.match_rules)


class TierRegistry:
    """Registry of cache tiers for one worker version.

    Resolution is deterministic: static, dynamic, pages and fallback are
    tried in that order, followed by any other tiers in registration order.
    The first tier with a matching rule wins.

    Example:
        registry = TierRegistry()
        registry.register(CacheTier.build("static", "cache-first", 3600, 100, [r"\\.css$"]))
        tier = registry.resolve_tier("https://app.example/main.css")
    """

    def __init__(self, tiers: Optional[List[CacheTier]] = None):
        self._tiers: Dict[str, CacheTier] = {}
        self._order: List[str] = []
        self._sequence: Dict[str, int] = {}
        for tier in tiers or []:
            self.register(tier)

    def register(self, tier: CacheTier) -> None:
        """Register a tier.

        Raises:
            ConfigurationError: If a tier with the same name exists
        """
        if tier.name in self._tiers:
            raise ConfigurationError(f"Duplicate cache tier: {tier.name!r}")

        self._tiers[tier.name] = tier
        self._sequence[tier.name] = len(self._sequence)
        self._order.append(tier.name)
        self._order.sort(key=self._priority)

    def _priority(self, name: str) -> Tuple[int, int]:
        if name in TIER_PRIORITY:
            return (0, TIER_PRIORITY.index(name))
        return (1, self._sequence[name])

    def resolve_tier(self, url: str) -> Optional[CacheTier]:
        """Resolve a resource URL to its tier.

        Args:
            url: Resource URL

        Returns:
            First matching tier, or None for network-only passthrough
        """
        for name in self._order:
            tier = self._tiers[name]
            if tier.matches(url):
                return tier
        return None

    def get(self, name: str) -> Optional[CacheTier]:
        """Get tier by name."""
        return self._tiers.get(name)

    def names(self) -> List[str]:
        """List tier names in resolution order."""
        return list(self._order)

    def __contains__(self, name: str) -> bool:
        return name in self._tiers

    def __iter__(self) -> Iterator[CacheTier]:
        return iter([self._tiers[name] for name in self._order])

    def __len__(self) -> int:
        return len(self._tiers)

    def __repr__(self) -> str:
        return f"TierRegistry(tiers={self._order!r})"


__all__ = ["StrategyKind", "CacheTier", "TierRegistry", "TIER_PRIORITY"]
