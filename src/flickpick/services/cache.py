from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from redis.asyncio import Redis

KEY_PREFIX = "flickpick:"


class CacheBackend(ABC):
    """Async key/value cache holding JSON-compatible values."""

    @abstractmethod
    async def get(self, key: str) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryCache(CacheBackend):
    """Process-local cache with TTL support."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[Any, float | None]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any:
        async with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at < time.time():
                del self._store[key]
                return None
            return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if value is None:
            await self.delete(key)
            return
        expires_at = time.time() + ttl if ttl else None
        async with self._lock:
            self._store[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._store.pop(key, None)


class RedisCache(CacheBackend):
    """Redis-backed cache."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    async def get(self, key: str) -> Any:
        raw = await self._client.get(f"{KEY_PREFIX}{key}")
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if value is None:
            await self.delete(key)
            return
        payload = json.dumps(value, ensure_ascii=False)
        if ttl:
            await self._client.set(f"{KEY_PREFIX}{key}", payload, ex=ttl)
        else:
            await self._client.set(f"{KEY_PREFIX}{key}", payload)

    async def delete(self, key: str) -> None:
        await self._client.delete(f"{KEY_PREFIX}{key}")


_cache: Optional[CacheBackend] = None


async def get_cache(redis_url: str | None = None) -> CacheBackend:
    global _cache
    if _cache is not None:
        return _cache
    if redis_url:
        redis_client = Redis.from_url(redis_url, decode_responses=True)
        _cache = RedisCache(redis_client)
    else:
        _cache = InMemoryCache()
    return _cache


def reset_cache() -> None:
    global _cache
    _cache = None
