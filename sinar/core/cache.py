"""
Key/value store with expiry, used for the token blacklist and rate limiting.

RedisStore is shared across processes and survives restarts; MemoryStore is the
single-process fallback used when REDIS_URL is not configured (and in tests).
Both expire keys on their own so nothing grows without bound.
"""
import logging
import time
from typing import Dict, Optional, Protocol, Tuple

from sinar.core.config import settings

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def exists(self, key: str) -> bool: ...

    async def incr(self, key: str, ttl: int) -> int: ...

    async def close(self) -> None: ...


class MemoryStore:
    """In-process TTL store"""

    def __init__(self, prefix: str = "sinar:"):
        self._prefix = prefix
        self._data: Dict[str, Tuple[str, float]] = {}

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _purge(self) -> None:
        now = time.monotonic()
        expired = [k for k, (_, expires_at) in self._data.items() if expires_at <= now]
        for k in expired:
            del self._data[k]

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._purge()
        self._data[self._make_key(key)] = (value, time.monotonic() + max(ttl, 1))

    async def exists(self, key: str) -> bool:
        self._purge()
        return self._make_key(key) in self._data

    async def incr(self, key: str, ttl: int) -> int:
        """Increment a counter; the expiry is fixed when the counter is created"""
        self._purge()
        full_key = self._make_key(key)
        if full_key in self._data:
            value, expires_at = self._data[full_key]
            count = int(value) + 1
        else:
            count, expires_at = 1, time.monotonic() + max(ttl, 1)
        self._data[full_key] = (str(count), expires_at)
        return count

    async def close(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        self._purge()
        return len(self._data)


class RedisStore:
    """Redis-backed TTL store"""

    def __init__(self, redis_url: str, prefix: str = "sinar:"):
        import redis.asyncio as redis

        self._prefix = prefix
        self._client = redis.Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self._client.set(self._make_key(key), value, ex=max(ttl, 1))

    async def exists(self, key: str) -> bool:
        return bool(await self._client.exists(self._make_key(key)))

    async def incr(self, key: str, ttl: int) -> int:
        full_key = self._make_key(key)
        count = await self._client.incr(full_key)
        if count == 1:
            await self._client.expire(full_key, max(ttl, 1))
        return int(count)

    async def close(self) -> None:
        await self._client.aclose()


_store: Optional[CacheStore] = None


def get_cache() -> CacheStore:
    """
    Process-wide store dependency

    Redis when REDIS_URL is configured, otherwise the in-process store.
    """
    global _store
    if _store is None:
        if settings.REDIS_URL:
            logger.info("Using Redis cache store")
            _store = RedisStore(settings.REDIS_URL)
        else:
            logger.warning("REDIS_URL not set, token blacklist is process-local")
            _store = MemoryStore()
    return _store


async def close_cache() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
