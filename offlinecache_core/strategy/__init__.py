"""Strategy module - Caching strategies and network fetchers."""

from offlinecache_core.strategy.fetcher import Fetcher, HttpxFetcher
from offlinecache_core.strategy.dispatcher import DispatchStats, StrategyDispatcher

__all__ = [
    "Fetcher",
    "HttpxFetcher",
    "DispatchStats",
    "StrategyDispatcher",
]
