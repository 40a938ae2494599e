"""Key -> value stores with expiry, injected into components.

Price, risk, scan and consolidation entries all go through a ``TTLStore``.
Writers never lock: concurrent writes of the same key are last-write-wins
and the short TTLs bound staleness.
"""

from __future__ import annotations

import json
import time
from typing import Any, Protocol

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

CACHE_PREFIX = "dustsweep:v1:"


def cache_key(kind: str, *parts: object) -> str:
    """Namespaced key, e.g. ``dustsweep:v1:risk:8453:0xabc``."""
    return CACHE_PREFIX + ":".join([kind, *(str(p).lower() for p in parts)])


class TTLStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def ping(self) -> bool: ...


class MemoryTTLStore:
    """In-process store. Values must be JSON-compatible like the Redis store."""

    def __init__(self, max_entries: int = 10_000) -> None:
        self._data: dict[str, tuple[float, Any]] = {}
        self._max_entries = max_entries

    async def get(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        if len(self._data) >= self._max_entries:
            self._evict_expired()
            if len(self._data) >= self._max_entries:
                # Oldest insertion first (dicts keep insertion order)
                self._data.pop(next(iter(self._data)))
        self._data[key] = (time.monotonic() + ttl, value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def ping(self) -> bool:
        return True

    def _evict_expired(self) -> None:
        now = time.monotonic()
        for key in [k for k, (exp, _) in self._data.items() if exp <= now]:
            del self._data[key]

    def __len__(self) -> int:
        return len(self._data)


class RedisTTLStore:
    """Shared store on redis.asyncio. Values are JSON-encoded.

    Read failures degrade to a cache miss, write failures are logged:
    the cache is an optimisation, never a dependency of a request.
    """

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            logger.warning(f"[CACHE] get {key} failed: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"[CACHE] Undecodable value at {key}, dropping")
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        try:
            await self._redis.set(key, json.dumps(value), ex=ttl)
        except RedisError as e:
            logger.warning(f"[CACHE] set {key} failed: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as e:
            logger.warning(f"[CACHE] delete {key} failed: {e}")

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False
