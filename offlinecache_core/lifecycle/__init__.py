"""Lifecycle module - Worker registration, activation and updates."""

from offlinecache_core.lifecycle.controller import (
    UPDATE_AVAILABLE,
    UPDATE_EVENT,
    LifecycleController,
    LifecycleState,
    RegistrationHandle,
)
from offlinecache_core.lifecycle.host import HttpManifestHost, InProcessHost, WorkerHost

__all__ = [
    "LifecycleController",
    "LifecycleState",
    "RegistrationHandle",
    "UPDATE_EVENT",
    "UPDATE_AVAILABLE",
    "WorkerHost",
    "InProcessHost",
    "HttpManifestHost",
]
