from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as redis

TimeFn = Callable[[], float]


class CacheStore:
    """Port interface for the key/value store behind the media cache."""

    async def get_bytes(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    async def get_fields(self, key: str) -> Dict[str, str]:
        raise NotImplementedError

    async def set_entry(self, data_key: str, data: bytes, meta_key: str, fields: Dict[str, str], ttl: int) -> None:
        """Write the byte entry first, then the metadata hash, both expiring after ttl seconds."""
        raise NotImplementedError

    async def delete(self, *keys: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class InMemoryCacheStore(CacheStore):
    """Thread-safe in-memory store with per-key expiry.

    For single-process dev/testing.
    """

    def __init__(self, now: Optional[TimeFn] = None):
        self._data: Dict[str, Tuple[object, float]] = {}
        self._lock = threading.RLock()
        self._now = now or time.monotonic

    def _get(self, key: str):
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if self._now() >= expires_at:
                del self._data[key]
                return None
            return value

    async def get_bytes(self, key: str) -> Optional[bytes]:
        value = self._get(key)
        return value if isinstance(value, bytes) else None

    async def get_fields(self, key: str) -> Dict[str, str]:
        value = self._get(key)
        return dict(value) if isinstance(value, dict) else {}

    async def set_entry(self, data_key: str, data: bytes, meta_key: str, fields: Dict[str, str], ttl: int) -> None:
        expires_at = self._now() + ttl
        with self._lock:
            self._data[data_key] = (bytes(data), expires_at)
            self._data[meta_key] = (dict(fields), expires_at)

    async def delete(self, *keys: str) -> None:
        with self._lock:
            for k in keys:
                self._data.pop(k, None)


class RedisCacheStore(CacheStore):
    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float = 3.0) -> "RedisCacheStore":
        # bytes in, bytes out: cached objects are binary
        client = redis.Redis.from_url(
            url,
            decode_responses=False,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            health_check_interval=30,
        )
        return cls(client)

    async def get_bytes(self, key: str) -> Optional[bytes]:
        return await self.client.get(key)

    async def get_fields(self, key: str) -> Dict[str, str]:
        raw = await self.client.hgetall(key)
        return {
            (k.decode("utf-8") if isinstance(k, bytes) else k): (v.decode("utf-8") if isinstance(v, bytes) else v)
            for k, v in (raw or {}).items()
        }

    async def set_entry(self, data_key: str, data: bytes, meta_key: str, fields: Dict[str, str], ttl: int) -> None:
        async with self.client.pipeline(transaction=False) as pipe:
            pipe.setex(data_key, ttl, data)
            pipe.hset(meta_key, mapping=fields)
            pipe.expire(meta_key, ttl)
            await pipe.execute()

    async def delete(self, *keys: str) -> None:
        if keys:
            await self.client.delete(*keys)

    async def close(self) -> None:
        await self.client.aclose()
