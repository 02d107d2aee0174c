"""OfflineCache Transport - Request Interception for httpx Clients.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Mounting the transport on an ``httpx.AsyncClient`` routes every GET the
application makes through the active caching worker:

    client = httpx.AsyncClient(transport=manager.transport())
    response = await client.get("https://app.example/styles/app.css")
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

import httpx

from offlinecache_core.cache.entry import ResourceRequest, ResourceSnapshot

logger = logging.getLogger(__name__)

RequestHandler = Callable[[ResourceRequest], Awaitable[ResourceSnapshot]]

# Bodies are stored decoded, so these no longer describe them
_STRIPPED_HEADERS = {"content-encoding", "content-length", "transfer-encoding"}


def to_resource_request(request: httpx.Request) -> ResourceRequest:
    """Convert an httpx request into a ResourceRequest.

    A request is a navigation when it accepts HTML.
    """
    accept = request.headers.get("accept", "")
    return ResourceRequest(
        url=str(request.url),
        method=request.method,
        headers=dict(request.headers),
        navigate="text/html" in accept,
    )


def to_httpx_response(snapshot: ResourceSnapshot, request: httpx.Request) -> httpx.Response:
    """Build an httpx response from a snapshot."""
    headers = {
        name: value
        for name, value in snapshot.headers.items()
        if name.lower() not in _STRIPPED_HEADERS
    }
    return httpx.Response(
        status_code=snapshot.status,
        headers=headers,
        content=snapshot.body,
        request=request,
    )


class OfflineCacheTransport(httpx.AsyncBaseTransport):
    """httpx transport that answers GET requests from the caching layer.

    Non-GET requests carry bodies the cache never sees, so they go
    straight to the wrapped transport.

    ResourceUnavailable and NetworkError raised by the handler propagate
    to the caller of ``client.send``.
    """

    def __init__(
        self,
        handler: RequestHandler,
        wrapped: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize transport.

        Args:
            handler: Coroutine satisfying a ResourceRequest (e.g. CacheManager.fetch)
            wrapped: Transport for non-GET requests
        """
        self._handler = handler
        self._wrapped = wrapped or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method.upper() != "GET":
            return await self._wrapped.handle_async_request(request)

        snapshot = await self._handler(to_resource_request(request))
        logger.debug(f"Intercepted {request.url} -> {snapshot.status}")
        return to_httpx_response(snapshot, request)

    async def aclose(self) -> None:
        await self._wrapped.aclose()


__all__ = ["OfflineCacheTransport", "to_resource_request", "to_httpx_response"]
