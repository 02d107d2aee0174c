"""OfflineCache Host - Worker Hosting Environment.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Set

import httpx

from offlinecache_core.errors import FeatureUnsupported, RegistrationFailure

logger = logging.getLogger(__name__)


class WorkerHost(ABC):
    """Environment that runs caching workers.

    Answers whether workers are supported, accepts registrations, reports
    the currently deployed version and counts the clients each version
    still controls.
    """

    @abstractmethod
    def is_supported(self) -> bool:
        """Check for caching worker support."""
        pass

    @abstractmethod
    async def register(self, version: str) -> None:
        """Register a worker version with the host.

        Raises:
            FeatureUnsupported: If the host cannot run workers
            RegistrationFailure: If the host rejects the registration
        """
        pass

    @abstractmethod
    async def unregister(self, version: str) -> bool:
        """Unregister a worker version.

        Returns:
            True if it was registered
        """
        pass

    @abstractmethod
    async def deployed_version(self) -> str:
        """Get the version currently deployed by the origin."""
        pass

    @abstractmethod
    def controlled_clients(self, version: str) -> int:
        """Count open clients controlled by a version."""
        pass

    def claim(self, version: str) -> None:
        """Hand control of open clients to an activated version."""
        return None


class InProcessHost(WorkerHost):
    """Deterministic host for single-process applications and tests.

    Example:
        host = InProcessHost(deployed="v1.0.0", clients=1)
        host.deploy("v1.0.1")      # next update check finds v1.0.1
        host.release_clients()     # old version no longer controls anything
    """

    def __init__(
        self,
        deployed: str = "v1.0.0",
        supported: bool = True,
        clients: int = 1,
        reject_registration: bool = False,
    ):
        """Initialize host.

        Args:
            deployed: Initially deployed version
            supported: Whether workers are supported
            clients: Open clients, all controlled by the active version
            reject_registration: Reject every registration
        """
        self._deployed = deployed
        self._supported = supported
        self._clients = clients
        self.reject_registration = reject_registration
        self._registered: Set[str] = set()
        self._controller: Optional[str] = None
        self.registration_calls = 0

    def is_supported(self) -> bool:
        return self._supported

    async def register(self, version: str) -> None:
        self.registration_calls += 1
        if not self._supported:
            raise FeatureUnsupported("Caching workers are not supported by this host")
        if self.reject_registration:
            raise RegistrationFailure(f"Host rejected worker {version}")
        self._registered.add(version)
        if self._controller is None:
            self._controller = version

    async def unregister(self, version: str) -> bool:
        if version not in self._registered:
            return False
        self._registered.discard(version)
        if self._controller == version:
            self._controller = None
        return True

    async def deployed_version(self) -> str:
        return self._deployed

    def controlled_clients(self, version: str) -> int:
        return self._clients if version == self._controller else 0

    def deploy(self, version: str) -> None:
        """Deploy a new version on the origin."""
        self._deployed = version

    def release_clients(self) -> None:
        """Close every open client."""
        self._clients = 0

    def open_client(self) -> None:
        """Open another client."""
        self._clients += 1

    def claim(self, version: str) -> None:
        """Hand control of open clients to a version."""
        self._controller = version

    @property
    def registered(self) -> Set[str]:
        """Registered versions."""
        return set(self._registered)


class HttpManifestHost(InProcessHost):
    """Host that discovers the deployed version from the origin.

    The origin publishes a JSON manifest such as ``{"version": "v1.0.1"}``.
    A failed lookup keeps the last known version.

    Example:
        host = HttpManifestHost("https://app.example/cache-manifest.json")
        version = await host.deployed_version()
    """

    def __init__(
        self,
        manifest_url: str,
        client: Optional[httpx.AsyncClient] = None,
        deployed: str = "v1.0.0",
        clients: int = 1,
    ):
        """Initialize host.

        Args:
            manifest_url: URL of the deployment manifest
            client: HTTP client; one is created per lookup when omitted
            deployed: Version assumed until the first lookup succeeds
            clients: Open clients
        """
        super().__init__(deployed=deployed, clients=clients)
        self.manifest_url = manifest_url
        self._client = client

    async def deployed_version(self) -> str:
        try:
            manifest = await self._fetch_manifest()
            version = str(manifest["version"])
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Deployment manifest lookup failed: {e}")
            return self._deployed

        self._deployed = version
        return version

    async def _fetch_manifest(self) -> Dict[str, object]:
        if self._client is not None:
            response = await self._client.get(self.manifest_url, headers={"Cache-Control": "no-cache"})
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(self.manifest_url, headers={"Cache-Control": "no-cache"})
            response.raise_for_status()
            return response.json()


__all__ = ["WorkerHost", "InProcessHost", "HttpManifestHost"]
