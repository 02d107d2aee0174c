"""Events module - Subscriber lists."""

from offlinecache_core.events.emitter import SubscriberList

__all__ = ["SubscriberList"]
