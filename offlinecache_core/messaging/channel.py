"""OfflineCache Channel - Message Passing Between Application and Worker.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import inspect
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from offlinecache_core.errors import MessageDeliveryFailure

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
MessageHandler = Callable[[Message], Any]


@dataclass
class ChannelStats:
    """Channel statistics.

    Attributes:
        posted: Messages posted
        delivered: Messages that reached at least one receiver
        dropped: Messages with no receiver
        errors: Receiver failures
    """

    posted: int = 0
    delivered: int = 0
    dropped: int = 0
    errors: int = 0


class MessageChannel(ABC):
    """One direction of the application/worker message boundary.

    Delivery is ordered but not guaranteed: a message posted while no
    receiver is subscribed is dropped, never queued.
    """

    def __init__(self, name: str = "channel"):
        self.name = name
        self._stats = ChannelStats()

    @abstractmethod
    async def post(self, message: Message) -> bool:
        """Post a fire-and-forget message.

        Args:
            message: Message dictionary with a ``type`` or ``name`` key

        Returns:
            True if a receiver handled it, False if dropped
        """
        pass

    @abstractmethod
    async def request(self, message: Message) -> Any:
        """Post a message and wait for the receiver's reply.

        Raises:
            MessageDeliveryFailure: If no receiver is subscribed
        """
        pass

    @abstractmethod
    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        """Register a receiver.

        Args:
            handler: Function(message), sync or async

        Returns:
            Unsubscribe function
        """
        pass

    @property
    @abstractmethod
    def ready(self) -> bool:
        """Whether a receiver is subscribed."""
        pass

    def get_stats(self) -> ChannelStats:
        """Get channel statistics."""
        return self._stats


class InMemoryChannel(MessageChannel):
    """In-process channel delivering to subscribed handlers in order.

    Example:
        channel = InMemoryChannel("to-worker")
        channel.subscribe(worker.handle_message)
        await channel.post({"type": "SKIP_WAITING"})
        size = await channel.request({"type": "GET_CACHE_SIZE"})
    """

    def __init__(self, name: str = "channel"):
        super().__init__(name)
        self._handlers: List[MessageHandler] = []
        self._lock = threading.RLock()

    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    @property
    def ready(self) -> bool:
        return bool(self._handlers)

    async def _deliver(self, handler: MessageHandler, message: Message) -> Any:
        result = handler(message)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def post(self, message: Message) -> bool:
        self._stats.posted += 1
        with self._lock:
            handlers = list(self._handlers)

        if not handlers:
            self._stats.dropped += 1
            logger.warning(f"Dropped message {_describe(message)} on {self.name}: no receiver")
            return False

        for handler in handlers:
            try:
                await self._deliver(handler, message)
            except Exception as e:
                self._stats.errors += 1
                logger.error(f"Receiver failed for {_describe(message)} on {self.name}: {e}")

        self._stats.delivered += 1
        return True

    async def request(self, message: Message) -> Any:
        self._stats.posted += 1
        with self._lock:
            handlers = list(self._handlers)

        if not handlers:
            self._stats.dropped += 1
            raise MessageDeliveryFailure(f"No receiver for {_describe(message)} on {self.name}")

        reply: Optional[Any] = None
        for handler in handlers:
            result = await self._deliver(handler, message)
            if reply is None:
                reply = result

        self._stats.delivered += 1
        return reply

    def __repr__(self) -> str:
        return f"InMemoryChannel(name={self.name!r}, receivers={len(self._handlers)})"


def _describe(message: Message) -> str:
    return str(message.get("type") or message.get("name") or "<untyped>")


__all__ = ["MessageChannel", "InMemoryChannel", "ChannelStats", "Message", "MessageHandler"]
