"""OfflineCache Connectivity - Online/Offline Transition Tracking.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from offlinecache_core.events.emitter import SubscriberList

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Passive view of the host's reachability signal.

    The monitor never polls the network. The host feeds it signals via
    ``update()``; subscribers are notified once per genuine transition and
    repeated identical signals are ignored.

    Example:
        monitor = ConnectivityMonitor(online=True)
        unsubscribe = monitor.subscribe(lambda online: banner.show(not online))
        monitor.update(False)   # callback fires with False
        monitor.update(False)   # no callback
    """

    def __init__(self, online: bool = True):
        """Initialize monitor.

        Args:
            online: Host's reachability signal at construction
        """
        self._online = bool(online)
        self._subscribers: SubscriberList[bool] = SubscriberList("connectivity")
        self._lock = threading.Lock()
        self._transitions = 0

    @property
    def online(self) -> bool:
        """Current online state."""
        return self._online

    def is_offline(self) -> bool:
        """Point-in-time offline check."""
        return not self._online

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Subscribe to transitions.

        Args:
            callback: Function(is_online)

        Returns:
            Unsubscribe function
        """
        return self._subscribers.subscribe(callback)

    def update(self, online: bool) -> bool:
        """Feed a reachability signal.

        Args:
            online: New signal value

        Returns:
            True if this was a transition
        """
        online = bool(online)
        with self._lock:
            if online == self._online:
                return False
            self._online = online
            self._transitions += 1

        logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
        self._subscribers.dispatch(online)
        return True

    def set_online(self) -> bool:
        """Signal that the host came online."""
        return self.update(True)

    def set_offline(self) -> bool:
        """Signal that the host went offline."""
        return self.update(False)

    @property
    def transitions(self) -> int:
        """Number of transitions observed."""
        return self._transitions

    @property
    def subscriber_count(self) -> int:
        """Number of subscribers."""
        return len(self._subscribers)

    def __repr__(self) -> str:
        return f"ConnectivityMonitor(online={self._online})"


__all__ = ["ConnectivityMonitor"]
