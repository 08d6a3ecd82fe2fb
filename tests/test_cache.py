"""
In-process TTL store
"""
import pytest

from sinar.core import cache as cache_module
from sinar.core.cache import MemoryStore


class Clock:
    """Replaces the time module inside sinar.core.cache only"""

    def __init__(self):
        self.now = 1000.0

    def monotonic(self):
        return self.now


@pytest.fixture
def clock(monkeypatch):
    clock = Clock()
    monkeypatch.setattr(cache_module, "time", clock)
    return clock


async def test_set_expires_after_ttl(clock):
    store = MemoryStore()
    await store.set("blacklist:abc", "1", ttl=60)

    clock.now += 59
    assert await store.exists("blacklist:abc") is True

    clock.now += 1
    assert await store.exists("blacklist:abc") is False
    assert len(store) == 0


async def test_incr_keeps_window_of_first_hit(clock):
    store = MemoryStore()

    assert await store.incr("ratelimit:1.2.3.4:1", ttl=10) == 1
    clock.now += 5
    assert await store.incr("ratelimit:1.2.3.4:1", ttl=10) == 2

    clock.now += 5
    assert await store.incr("ratelimit:1.2.3.4:1", ttl=10) == 1


async def test_keys_are_independent(clock):
    store = MemoryStore()
    await store.incr("a", ttl=10)
    await store.incr("a", ttl=10)

    assert await store.incr("b", ttl=10) == 1
    assert await store.exists("a") is True
    assert await store.exists("c") is False


async def test_close_clears(clock):
    store = MemoryStore()
    await store.set("k", "v", ttl=10)
    await store.close()
    assert len(store) == 0


async def test_get_cache_falls_back_to_memory(monkeypatch):
    monkeypatch.setattr(cache_module, "_store", None)
    monkeypatch.setattr(cache_module.settings, "REDIS_URL", None)

    store = cache_module.get_cache()

    assert isinstance(store, MemoryStore)
    assert cache_module.get_cache() is store
    await cache_module.close_cache()
    assert cache_module._store is None
