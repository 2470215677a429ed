"""Result cache fronting the document store (cache-aside).

``ResultCache`` is what the service talks to. It serializes values to JSON and
never lets a backend failure escape: a failed ``get`` is a miss, a failed
``set``/``delete`` is logged and dropped. Backends only move strings around.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any, Protocol

import redis.asyncio as redis
from cachetools import TLRUCache

from app.core.config import Settings

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def delete(self, keys: list[str]) -> None: ...

    async def close(self) -> None: ...


def _expires_at(_key: str, entry: tuple[str, int], now: float) -> float:
    return now + entry[1]


class MemoryCacheBackend:
    """In-process backend: per-entry TTL plus LRU eviction at ``max_size``."""

    def __init__(self, max_size: int = 1000, timer: Callable[[], float] = time.monotonic) -> None:
        self.max_size = max_size
        self._cache: TLRUCache = TLRUCache(maxsize=max_size, ttu=_expires_at, timer=timer)

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: str) -> str | None:
        entry = self._cache.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._cache[key] = (value, ttl)

    async def delete(self, keys: list[str]) -> None:
        for key in keys:
            self._cache.pop(key, None)

    async def close(self) -> None:
        self._cache.clear()


class RedisCacheBackend:
    """Shared backend for multi-process deployments."""

    def __init__(self, redis_url: str, prefix: str = "directory:") -> None:
        self.prefix = prefix
        self.client = redis.from_url(redis_url, decode_responses=True)

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> str | None:
        return await self.client.get(self._make_key(key))

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self.client.set(self._make_key(key), value, ex=ttl)

    async def delete(self, keys: list[str]) -> None:
        if keys:
            await self.client.delete(*(self._make_key(k) for k in keys))

    async def close(self) -> None:
        await self.client.aclose()


class ResultCache:
    def __init__(self, backend: CacheBackend) -> None:
        self.backend = backend
        self.hits = 0
        self.misses = 0
        self.errors = 0

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.backend.get(key)
            value = json.loads(raw) if raw is not None else None
        except Exception:
            logger.exception("Cache get failed for key=%s — treating as miss", key)
            self.errors += 1
            self.misses += 1
            return None

        if value is None:
            self.misses += 1
            logger.debug("Cache MISS: %s", key)
            return None

        self.hits += 1
        logger.debug("Cache HIT: %s", key)
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        try:
            await self.backend.set(key, json.dumps(value), ttl)
        except Exception:
            logger.exception("Cache set failed for key=%s", key)
            self.errors += 1

    async def delete(self, key: str) -> None:
        await self.delete_many([key])

    async def delete_many(self, keys: Iterable[str]) -> None:
        keys = list(dict.fromkeys(keys))
        try:
            await self.backend.delete(keys)
        except Exception:
            logger.exception("Cache invalidation failed for keys=%s", keys)
            self.errors += 1

    async def close(self) -> None:
        try:
            await self.backend.close()
        except Exception:
            logger.exception("Cache backend close failed")

    def stats(self) -> dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "errors": self.errors}


def create_result_cache(settings: Settings) -> ResultCache:
    if settings.CACHE_BACKEND == "redis":
        logger.info("Using Redis result cache (%s)", settings.REDIS_URL.split("@")[-1])
        return ResultCache(RedisCacheBackend(settings.REDIS_URL, prefix=settings.REDIS_KEY_PREFIX))
    if settings.CACHE_BACKEND != "memory":
        raise ValueError(f"Unknown CACHE_BACKEND: {settings.CACHE_BACKEND!r}")
    return ResultCache(MemoryCacheBackend(max_size=settings.CACHE_MAX_SIZE))
