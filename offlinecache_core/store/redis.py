"""OfflineCache Redis Store - Persistent Redis Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from offlinecache_core.cache.entry import CacheEntry
from offlinecache_core.errors import CacheWriteFailure
from offlinecache_core.protocol.serializer import Serializer, get_serializer
from offlinecache_core.store.backend import StorageBackend, StorageConfig

logger = logging.getLogger(__name__)


@dataclass
class RedisConfig(StorageConfig):
    """Redis-specific configuration.

    Attributes:
        host: Redis host
        port: Redis port
        db: Redis database number
        password: Redis password
        socket_timeout: Socket timeout
        socket_connect_timeout: Connection timeout
        max_connections: Connection pool size
        prefix: Key prefix
        serializer: Entry serializer format (json, pickle, msgpack)
    """

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    max_connections: int = 10
    prefix: str = "offlinecache:"
    serializer: str = "msgpack"


class RedisStore(StorageBackend):
    """Redis storage backend.

    Survives process restarts, which gives the worker the same
    persistence the browser's cache storage has.

    Layout per namespace:
    - ``{prefix}ns:{namespace}:data``: hash of key -> serialized entry
    - ``{prefix}ns:{namespace}:order``: sorted set of key -> insertion sequence
    - ``{prefix}namespaces``: set of namespace names

    Example:
        store = RedisStore(RedisConfig(host="redis.local", port=6379))
        await store.put("app-v1-static", CacheEntry(key=url, payload=snapshot))
        entry = await store.get("app-v1-static", url)
    """

    def __init__(self, config: Optional[RedisConfig] = None, client: Optional[Any] = None):
        """Initialize Redis store.

        Args:
            config: Redis configuration
            client: Pre-built redis.asyncio client
        """
        super().__init__(config)
        self.config: RedisConfig = config or RedisConfig()
        self._client: Optional[Any] = client
        self._pool: Optional[Any] = None
        self._serializer: Serializer = get_serializer(self.config.serializer)

    async def _ensure_connected(self) -> Any:
        """Ensure Redis connection exists.

        Returns:
            Redis client
        """
        if self._client is not None:
            return self._client

        try:
            import redis.asyncio as redis
        except ImportError:
            raise ImportError("Redis package not installed. Run: pip install redis")

        try:
            self._pool = redis.ConnectionPool(
                host=self.config.host,
                port=self.config.port,
                db=self.config.db,
                password=self.config.password,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_connect_timeout,
                max_connections=self.config.max_connections,
                decode_responses=False,  # We handle serialization
            )
            client = redis.Redis(connection_pool=self._pool)
            await client.ping()
            logger.info(f"Connected to Redis at {self.config.host}:{self.config.port}")
            self._client = client
            return client

        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    def _data_key(self, namespace: str) -> str:
        return f"{self.config.prefix}ns:{namespace}:data"

    def _order_key(self, namespace: str) -> str:
        return f"{self.config.prefix}ns:{namespace}:order"

    @property
    def _namespaces_key(self) -> str:
        return f"{self.config.prefix}namespaces"

    @property
    def _sequence_key(self) -> str:
        return f"{self.config.prefix}seq"

    @staticmethod
    def _decode(value: Any) -> str:
        return value.decode() if isinstance(value, bytes) else value

    async def get(self, namespace: str, key: str) -> Optional[CacheEntry]:
        try:
            client = await self._ensure_connected()
            self._stats.reads += 1
            data = await client.hget(self._data_key(namespace), key)
            if data is None:
                return None
            return CacheEntry.from_dict(self._serializer.deserialize(data))

        except Exception as e:
            logger.error(f"Redis get error: {e}")
            self._stats.record_error(str(e))
            return None

    async def put(self, namespace: str, entry: CacheEntry) -> None:
        try:
            client = await self._ensure_connected()
            data = self._serializer.serialize(entry.to_dict())
            sequence = await client.incr(self._sequence_key)

            pipe = client.pipeline()
            pipe.sadd(self._namespaces_key, namespace)
            pipe.hset(self._data_key(namespace), entry.key, data)
            pipe.zadd(self._order_key(namespace), {entry.key: sequence})
            await pipe.execute()
            self._stats.writes += 1

        except Exception as e:
            logger.error(f"Redis put error: {e}")
            self._stats.record_error(str(e))
            raise CacheWriteFailure(f"Redis write failed for {entry.key}: {e}") from e

    async def delete(self, namespace: str, key: str) -> bool:
        try:
            client = await self._ensure_connected()
            pipe = client.pipeline()
            pipe.hdel(self._data_key(namespace), key)
            pipe.zrem(self._order_key(namespace), key)
            removed, _ = await pipe.execute()
            self._stats.deletes += 1
            return removed > 0

        except Exception as e:
            logger.error(f"Redis delete error: {e}")
            self._stats.record_error(str(e))
            return False

    async def list_keys(self, namespace: str) -> List[str]:
        try:
            client = await self._ensure_connected()
            keys = await client.zrange(self._order_key(namespace), 0, -1)
            return [self._decode(key) for key in keys]

        except Exception as e:
            logger.error(f"Redis keys error: {e}")
            return []

    async def list_namespaces(self) -> List[str]:
        try:
            client = await self._ensure_connected()
            names = await client.smembers(self._namespaces_key)
            return sorted(self._decode(name) for name in names)

        except Exception as e:
            logger.error(f"Redis namespaces error: {e}")
            return []

    async def delete_namespace(self, namespace: str) -> bool:
        try:
            client = await self._ensure_connected()
            pipe = client.pipeline()
            pipe.srem(self._namespaces_key, namespace)
            pipe.delete(self._data_key(namespace), self._order_key(namespace))
            removed, _ = await pipe.execute()
            return removed > 0

        except Exception as e:
            logger.error(f"Redis namespace delete error: {e}")
            self._stats.record_error(str(e))
            return False

    async def open_namespace(self, namespace: str) -> None:
        client = await self._ensure_connected()
        await client.sadd(self._namespaces_key, namespace)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
            self._client = None

    def __repr__(self) -> str:
        return f"RedisStore(host={self.config.host}, port={self.config.port})"


__all__ = ["RedisStore", "RedisConfig"]
