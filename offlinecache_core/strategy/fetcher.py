"""OfflineCache Fetcher - Network Access for Caching Strategies.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from offlinecache_core.cache.entry import ResourceRequest, ResourceSnapshot
from offlinecache_core.errors import NetworkError

logger = logging.getLogger(__name__)


class Fetcher(ABC):
    """Abstract network fetcher.

    Returns a snapshot for any HTTP response, including error statuses.
    Raises NetworkError only when no response was received.
    """

    @abstractmethod
    async def fetch(self, request: ResourceRequest) -> ResourceSnapshot:
        """Fetch a resource from the network.

        Args:
            request: Resource request

        Returns:
            Response snapshot

        Raises:
            NetworkError: On connection failure or timeout
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None


class HttpxFetcher(Fetcher):
    """Fetcher backed by an httpx.AsyncClient.

    Example:
        fetcher = HttpxFetcher(timeout=10.0)
        snapshot = await fetcher.fetch(ResourceRequest("https://app.example/"))
        await fetcher.close()
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize fetcher.

        Args:
            client: Client to use; one is created when omitted
            timeout: Request timeout in seconds for a created client
            transport: Transport for a created client
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, transport=transport)

    async def fetch(self, request: ResourceRequest) -> ResourceSnapshot:
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
            )
        except httpx.HTTPError as e:
            logger.debug(f"Network fetch failed for {request.url}: {e}")
            raise NetworkError(request.url, f"Network request failed: {request.url}: {e}") from e

        return ResourceSnapshot(
            url=request.url,
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


__all__ = ["Fetcher", "HttpxFetcher"]
