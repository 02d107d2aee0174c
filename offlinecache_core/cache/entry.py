"""OfflineCache Entry - Resource Snapshots and Cache Entries.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ResourceRequest:
    """An outgoing resource request.

    Attributes:
        url: Absolute resource URL (also the cache key)
        method: HTTP method
        headers: Request headers
        navigate: Whether this is a document navigation
    """

    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    navigate: bool = False

    @property
    def key(self) -> str:
        """Get the cache key for this request."""
        return self.url

    @property
    def is_cacheable_method(self) -> bool:
        """Only GET requests are ever cached."""
        return self.method.upper() == "GET"


@dataclass(frozen=True)
class ResourceSnapshot:
    """Immutable snapshot of a network response.

    The caching layer treats the body as opaque bytes.

    Attributes:
        url: Resource URL
        status: HTTP status code
        headers: Response headers
        body: Response body
    """

    url: str
    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """Check for a successful (2xx) status."""
        return 200 <= self.status < 300

    @property
    def size_bytes(self) -> int:
        """Get payload size in bytes."""
        return len(self.body)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "status": self.status,
            "headers": dict(self.headers),
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceSnapshot":
        """Create from dictionary."""
        body = data.get("body", b"")
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            url=data["url"],
            status=data.get("status", 200),
            headers=dict(data.get("headers") or {}),
            body=bytes(body),
        )


@dataclass
class CacheEntry:
    """A cached resource owned by exactly one namespace.

    Attributes:
        key: Resource key (request URL)
        payload: Response snapshot
        inserted_at: Insertion timestamp in seconds
    """

    key: str
    payload: ResourceSnapshot
    inserted_at: float = field(default_factory=time.time)

    @property
    def size_bytes(self) -> int:
        """Get payload size in bytes."""
        return self.payload.size_bytes

    def age_seconds(self, now: Optional[float] = None) -> float:
        """Get entry age in seconds.

        Args:
            now: Current time, defaults to time.time()

        Returns:
            Seconds since insertion
        """
        now = time.time() if now is None else now
        return now - self.inserted_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            "key": self.key,
            "payload": self.payload.to_dict(),
            "inserted_at": self.inserted_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        """Create from dictionary.

        Args:
            data: Dictionary data

        Returns:
            CacheEntry instance
        """
        return cls(
            key=data["key"],
            payload=ResourceSnapshot.from_dict(data["payload"]),
            inserted_at=data.get("inserted_at", time.time()),
        )

    def __repr__(self) -> str:
        return (
            f"CacheEntry(key={self.key!r}, status={self.payload.status}, "
            f"size={self.size_bytes})"
        )


__all__ = ["CacheEntry", "ResourceRequest", "ResourceSnapshot"]
