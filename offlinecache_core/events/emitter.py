"""OfflineCache Emitter - Ordered Subscriber Lists.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SubscriberList(Generic[T]):
    """Ordered list of callbacks with register/unregister/dispatch.

    Dispatch iterates a snapshot of the subscribers, so a callback that
    unsubscribes itself (or another callback) during dispatch neither
    raises nor causes a subscriber to be skipped. A failing callback is
    logged and does not stop dispatch.

    Example:
        listeners = SubscriberList()
        unsubscribe = listeners.subscribe(lambda online: print(online))
        listeners.dispatch(False)
        unsubscribe()
    """

    def __init__(self, name: str = "subscribers"):
        self.name = name
        self._callbacks: List[Callable[[T], Any]] = []
        self._lock = threading.RLock()

    def subscribe(self, callback: Callable[[T], Any]) -> Callable[[], None]:
        """Register a callback.

        Args:
            callback: Function(payload)

        Returns:
            Function removing this subscription; safe to call twice
        """
        with self._lock:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Callable[[T], Any]) -> bool:
        """Remove a callback.

        Returns:
            True if it was registered
        """
        with self._lock:
            try:
                self._callbacks.remove(callback)
                return True
            except ValueError:
                return False

    def dispatch(self, payload: T) -> int:
        """Invoke every subscriber once, in subscription order.

        Args:
            payload: Value passed to each callback

        Returns:
            Number of callbacks invoked
        """
        with self._lock:
            snapshot = list(self._callbacks)

        for callback in snapshot:
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"{self.name} callback failed: {e}")

        return len(snapshot)

    def clear(self) -> None:
        """Remove all callbacks."""
        with self._lock:
            self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)

    def __repr__(self) -> str:
        return f"SubscriberList(name={self.name!r}, subscribers={len(self._callbacks)})"


__all__ = ["SubscriberList"]
