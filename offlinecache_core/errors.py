"""OfflineCache Errors - Exception Hierarchy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Every failure in the caching layer is non-fatal to the hosting application.
Only ResourceUnavailable (and NetworkError under NetworkOnly) reach callers;
the rest are logged by the component that catches them.
"""

from __future__ import annotations

from typing import Optional


class OfflineCacheError(Exception):
    """Base class for caching layer errors."""


class ConfigurationError(OfflineCacheError):
    """Invalid tier or cache configuration."""


class FeatureUnsupported(OfflineCacheError):
    """Host has no support for a caching worker."""


class RegistrationFailure(OfflineCacheError):
    """Host rejected the worker registration."""


class ResourceUnavailable(OfflineCacheError):
    """A strategy exhausted both network and cache.

    Attributes:
        url: Requested resource URL
    """

    def __init__(self, url: str, reason: Optional[str] = None):
        self.url = url
        self.reason = reason
        message = f"Resource unavailable: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class CacheWriteFailure(OfflineCacheError):
    """Storage quota exceeded or backend write error."""


class MessageDeliveryFailure(OfflineCacheError):
    """No receiver for a control message."""


class NetworkError(OfflineCacheError):
    """Network fetch failed before a response was received.

    Attributes:
        url: Requested resource URL
    """

    def __init__(self, url: str, message: Optional[str] = None):
        self.url = url
        super().__init__(message or f"Network request failed: {url}")


__all__ = [
    "OfflineCacheError",
    "ConfigurationError",
    "FeatureUnsupported",
    "RegistrationFailure",
    "ResourceUnavailable",
    "CacheWriteFailure",
    "MessageDeliveryFailure",
    "NetworkError",
]
