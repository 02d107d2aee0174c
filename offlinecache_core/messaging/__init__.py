"""Messaging module - Application/worker message channels."""

from offlinecache_core.messaging.channel import (
    ChannelStats,
    InMemoryChannel,
    MessageChannel,
)

__all__ = ["ChannelStats", "InMemoryChannel", "MessageChannel"]
