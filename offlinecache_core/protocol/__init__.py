"""Protocol module - Entry serialization."""

from offlinecache_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
    get_serializer,
)

__all__ = [
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "get_serializer",
]
