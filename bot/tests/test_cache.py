from __future__ import annotations

import time

import pytest

from core.config import RedisConfig
from services.cache import MemoryCache, build_cache


@pytest.mark.asyncio
async def test_memory_cache_set_get_delete() -> None:
    cache = MemoryCache()
    await cache.set("a", "1")
    assert await cache.get("a") == "1"
    await cache.delete("a")
    assert await cache.get("a") is None


@pytest.mark.asyncio
async def test_memory_cache_drops_expired_entries() -> None:
    cache = MemoryCache()
    await cache.set("fresh", "1", ttl=60)
    await cache.set("stale", "2", ttl=60)
    cache._store["stale"].expires_at = time.monotonic() - 1

    assert await cache.get("fresh") == "1"
    assert await cache.get("stale") is None
    assert "stale" not in cache._store


@pytest.mark.asyncio
async def test_build_cache_defaults_to_memory() -> None:
    cache = await build_cache(RedisConfig(enabled=False))
    assert isinstance(cache, MemoryCache)
