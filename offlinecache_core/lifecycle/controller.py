"""OfflineCache Lifecycle - Worker Install/Activate/Update State Machine.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, List, Optional

from offlinecache_core.lifecycle.host import WorkerHost
from offlinecache_core.messaging.channel import MessageChannel
from offlinecache_core.worker.worker import SKIP_WAITING, CacheWorker

logger = logging.getLogger(__name__)

UPDATE_EVENT = "worker-update"
UPDATE_AVAILABLE = "update-available"


class LifecycleState(Enum):
    """Worker lifecycle states."""

    IDLE = auto()
    REGISTERING = auto()
    INSTALLING = auto()
    INSTALLED = auto()
    WAITING = auto()
    ACTIVATING = auto()
    ACTIVATED = auto()
    REDUNDANT = auto()


@dataclass(eq=False)
class RegistrationHandle:
    """Lifecycle state of one worker version.

    Attributes:
        version: Worker version
        worker: The worker itself
        state: Current lifecycle state
        history: Every state entered, in order
    """

    version: str
    worker: CacheWorker
    state: LifecycleState = LifecycleState.IDLE
    history: List[LifecycleState] = field(default_factory=list)

    def transition(self, state: LifecycleState) -> None:
        """Enter a new state."""
        logger.info(f"Worker {self.version}: {self.state.name} -> {state.name}")
        self.state = state
        self.history.append(state)

    @property
    def is_active(self) -> bool:
        """Check if this version controls the cache."""
        return self.state == LifecycleState.ACTIVATED

    @property
    def is_redundant(self) -> bool:
        """Check if this version was superseded or failed."""
        return self.state == LifecycleState.REDUNDANT

    def __repr__(self) -> str:
        return f"RegistrationHandle(version={self.version!r}, state={self.state.name})"


class LifecycleController:
    """Manages registration, activation and updates of caching workers.

    - ``register()`` is idempotent: concurrent calls share one in-flight
      registration and receive the same handle
    - The first registration installs and activates immediately
    - An update installs alongside the active version and waits; it
      activates on SKIP_WAITING or once the old version controls no
      clients, emitting ``update-available`` when it starts waiting
    - Activation deletes every namespace the new version does not own

    Example:
        controller = LifecycleController(host, worker_factory, "v1.0.0", client_channel)
        handle = await controller.register()
        await controller.check_for_update()
        await controller.activate_waiting_version()
    """

    def __init__(
        self,
        host: WorkerHost,
        worker_factory: Callable[[str], CacheWorker],
        version: str,
        client_channel: MessageChannel,
    ):
        """Initialize controller.

        Args:
            host: Worker hosting environment
            worker_factory: Builds the worker of a version
            version: Version registered by ``register()``
            client_channel: Channel to the application for notifications
        """
        self._host = host
        self._factory = worker_factory
        self._version = version
        self._client_channel = client_channel

        self._active: Optional[RegistrationHandle] = None
        self._waiting: Optional[RegistrationHandle] = None
        self._registering: Optional["asyncio.Future[Optional[RegistrationHandle]]"] = None
        self._update_lock = asyncio.Lock()

    @property
    def active(self) -> Optional[RegistrationHandle]:
        """Handle of the activated version."""
        return self._active

    @property
    def waiting(self) -> Optional[RegistrationHandle]:
        """Handle of an installed update awaiting activation."""
        return self._waiting

    @property
    def active_worker(self) -> Optional[CacheWorker]:
        """Worker of the activated version."""
        return self._active.worker if self._active is not None else None

    async def register(self) -> Optional[RegistrationHandle]:
        """Register, install and activate the configured version.

        Never raises: unsupported hosts and rejected registrations are
        logged and yield None, and a later call may retry.

        Returns:
            The registration handle, or None
        """
        if not self._host.is_supported():
            logger.info("Caching worker not supported by host")
            return None

        if self._active is not None:
            return self._active

        if self._registering is None:
            self._registering = asyncio.ensure_future(self._register())

        task = self._registering
        try:
            return await asyncio.shield(task)
        finally:
            if task.done() and self._registering is task:
                self._registering = None

    async def _register(self) -> Optional[RegistrationHandle]:
        worker = self._factory(self._version)
        handle = RegistrationHandle(version=self._version, worker=worker)
        handle.transition(LifecycleState.REGISTERING)

        try:
            await self._host.register(handle.version)
            handle.transition(LifecycleState.INSTALLING)
            await worker.install()
        except Exception as e:
            logger.error(f"Caching worker registration failed: {e}")
            handle.transition(LifecycleState.REDUNDANT)
            await worker.terminate()
            return None

        handle.transition(LifecycleState.INSTALLED)
        # Nothing controls clients yet, so there is nothing to wait for
        await self._activate(handle)
        return handle

    async def _activate(self, handle: RegistrationHandle) -> None:
        handle.transition(LifecycleState.ACTIVATING)
        previous = self._active
        self._active = handle
        if self._waiting is handle:
            self._waiting = None
        handle.worker.on_skip_waiting(None)

        if previous is not None and previous is not handle:
            previous.transition(LifecycleState.REDUNDANT)
            # Pending writes must land before their namespaces are cleaned up
            await previous.worker.terminate()
            try:
                await self._host.unregister(previous.version)
            except Exception as e:
                logger.error(f"Failed to unregister superseded worker {previous.version}: {e}")

        try:
            await handle.worker.activate()
        except Exception as e:
            logger.error(f"Stale namespace cleanup failed for {handle.version}: {e}")

        self._host.claim(handle.version)
        handle.transition(LifecycleState.ACTIVATED)

    async def unregister(self) -> bool:
        """Unregister the active version.

        Returns:
            True if a worker was unregistered
        """
        handle = self._active
        if handle is None or not self._host.is_supported():
            return False

        try:
            unregistered = await self._host.unregister(handle.version)
        except Exception as e:
            logger.error(f"Caching worker unregistration failed: {e}")
            return False

        handle.transition(LifecycleState.REDUNDANT)
        await handle.worker.terminate()
        self._active = None

        waiting = self._waiting
        if waiting is not None:
            waiting.transition(LifecycleState.REDUNDANT)
            await waiting.worker.terminate()
            self._waiting = None
            try:
                await self._host.unregister(waiting.version)
            except Exception as e:
                logger.error(f"Failed to unregister waiting worker {waiting.version}: {e}")

        logger.info(f"Caching worker {handle.version} unregistered: {unregistered}")
        return unregistered

    async def check_for_update(self) -> Optional[RegistrationHandle]:
        """Install a newly deployed version, if any.

        Returns:
            Handle of the new version, or None if there was no update
        """
        if self._active is None:
            logger.info("No active caching worker, skipping update check")
            return None

        async with self._update_lock:
            try:
                deployed = await self._host.deployed_version()
            except Exception as e:
                logger.error(f"Caching worker update check failed: {e}")
                return None

            if deployed == self._active.version:
                logger.debug(f"Caching worker {deployed} is up to date")
                return None

            if self._waiting is not None:
                if self._waiting.version == deployed:
                    return self._waiting
                # A newer deployment supersedes the waiting one
                superseded = self._waiting
                self._waiting = None
                superseded.transition(LifecycleState.REDUNDANT)
                await superseded.worker.terminate()
                try:
                    await self._host.unregister(superseded.version)
                except Exception as e:
                    logger.error(f"Failed to unregister superseded worker {superseded.version}: {e}")

            logger.info(f"Caching worker update found: {self._active.version} -> {deployed}")
            return await self._install_update(deployed)

    async def _install_update(self, version: str) -> Optional[RegistrationHandle]:
        worker = self._factory(version)
        handle = RegistrationHandle(version=version, worker=worker)
        handle.transition(LifecycleState.INSTALLING)

        try:
            await self._host.register(version)
            await worker.install()
        except Exception as e:
            logger.error(f"Caching worker {version} failed to install: {e}")
            handle.transition(LifecycleState.REDUNDANT)
            await worker.terminate()
            return None

        handle.transition(LifecycleState.INSTALLED)
        handle.transition(LifecycleState.WAITING)
        self._waiting = handle
        worker.on_skip_waiting(lambda: self._activate_waiting(handle))

        await self._client_channel.post({
            "name": UPDATE_EVENT,
            "detail": {"type": UPDATE_AVAILABLE},
            "version": version,
        })

        if self._active is None or self._host.controlled_clients(self._active.version) == 0:
            await self._activate_waiting(handle)

        return handle

    async def _activate_waiting(self, handle: RegistrationHandle) -> None:
        if self._waiting is not handle:
            return
        await self._activate(handle)

    async def activate_waiting_version(self) -> None:
        """Send SKIP_WAITING to the waiting version.

        A no-op when nothing is waiting.
        """
        waiting = self._waiting
        if waiting is None:
            logger.info("No waiting caching worker to activate")
            return

        if not await waiting.worker.channel.post({"type": SKIP_WAITING}):
            logger.warning(f"Skip-waiting message for {waiting.version} was not delivered")

    async def clients_released(self) -> None:
        """Activate a waiting version once the old one controls no clients."""
        waiting = self._waiting
        if waiting is None or self._active is None:
            return
        if self._host.controlled_clients(self._active.version) == 0:
            await self._activate_waiting(waiting)

    def __repr__(self) -> str:
        return f"LifecycleController(active={self._active!r}, waiting={self._waiting!r})"


__all__ = [
    "LifecycleController",
    "LifecycleState",
    "RegistrationHandle",
    "UPDATE_EVENT",
    "UPDATE_AVAILABLE",
]
