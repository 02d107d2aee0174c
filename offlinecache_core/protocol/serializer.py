"""OfflineCache Serializer - Entry Serialization for Persistent Stores.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import base64
import json
import logging
import pickle
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class Serializer(ABC):
    """Abstract serializer for cache entry dictionaries.

    Entry dictionaries carry raw response bodies as bytes, so every
    implementation must round-trip bytes values.
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Get format name."""
        pass

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Serialize value to bytes.

        Args:
            value: Value to serialize

        Returns:
            Serialized bytes
        """
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to value.

        Args:
            data: Serialized bytes

        Returns:
            Deserialized value
        """
        pass


class JSONSerializer(Serializer):
    """JSON serializer.

    Human-readable; bytes are stored as base64 objects.
    """

    _BYTES_TAG = "__bytes__"

    @property
    def format_name(self) -> str:
        return "json"

    def _default(self, value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            return {self._BYTES_TAG: base64.b64encode(bytes(value)).decode("ascii")}
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    def _object_hook(self, obj: Dict[str, Any]) -> Any:
        if len(obj) == 1 and self._BYTES_TAG in obj:
            return base64.b64decode(obj[self._BYTES_TAG])
        return obj

    def serialize(self, value: Any) -> bytes:
        return json.dumps(value, default=self._default).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"), object_hook=self._object_hook)


class PickleSerializer(Serializer):
    """Pickle serializer.

    Supports any Python object.
    Not safe for untrusted data.
    """

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        """Initialize pickle serializer.

        Args:
            protocol: Pickle protocol version
        """
        self.protocol = protocol

    @property
    def format_name(self) -> str:
        return "pickle"

    def serialize(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self.protocol)

    def deserialize(self, data: bytes) -> Any:
        return pickle.loads(data)


class MsgPackSerializer(Serializer):
    """MessagePack serializer.

    Compact binary format with native bytes support.
    Requires msgpack package.
    """

    @property
    def format_name(self) -> str:
        return "msgpack"

    def serialize(self, value: Any) -> bytes:
        """Serialize to MessagePack bytes.

        Args:
            value: Value to serialize

        Returns:
            MessagePack bytes
        """
        try:
            import msgpack
        except ImportError:
            raise ImportError("msgpack package not installed. Run: pip install msgpack")
        return msgpack.packb(value, use_bin_type=True)

    def deserialize(self, data: bytes) -> Any:
        """Deserialize from MessagePack bytes.

        Args:
            data: MessagePack bytes

        Returns:
            Deserialized value
        """
        try:
            import msgpack
        except ImportError:
            raise ImportError("msgpack package not installed. Run: pip install msgpack")
        return msgpack.unpackb(data, raw=False)


class SerializerRegistry:
    """Registry of serializers."""

    def __init__(self):
        self._serializers: Dict[str, Serializer] = {}
        self._default: str = "msgpack"

        self.register(JSONSerializer())
        self.register(PickleSerializer())
        self.register(MsgPackSerializer())

    def register(self, serializer: Serializer) -> None:
        """Register a serializer.

        Args:
            serializer: Serializer to register
        """
        self._serializers[serializer.format_name] = serializer

    def get(self, format_name: str) -> Serializer:
        """Get serializer by format.

        Raises:
            KeyError: If format not found
        """
        if format_name not in self._serializers:
            raise KeyError(f"Unknown serializer format: {format_name}")
        return self._serializers[format_name]

    def get_default(self) -> Serializer:
        """Get default serializer."""
        return self._serializers[self._default]

    def list_formats(self) -> list[str]:
        """List available formats."""
        return list(self._serializers.keys())


_registry = SerializerRegistry()


def get_serializer(format_name: Optional[str] = None) -> Serializer:
    """Get serializer by format.

    Args:
        format_name: Format name or None for default

    Returns:
        Serializer instance
    """
    if format_name is None:
        return _registry.get_default()
    return _registry.get(format_name)


__all__ = [
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "SerializerRegistry",
    "get_serializer",
]
