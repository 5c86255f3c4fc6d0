from __future__ import annotations

import pytest

from trendinghub.services.cache import redis_client
from trendinghub.services.cache.redis_client import NewsCache, news_dates_key, news_list_key

pytestmark = pytest.mark.asyncio


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def monotonic(self) -> float:
        return self.now


class FakeRedis:
    def __init__(self) -> None:
        self.data = {}
        self.expiry = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex


class DownRedis:
    async def get(self, key):
        raise ConnectionError("connection refused")

    async def set(self, key, value, ex=None):
        raise ConnectionError("connection refused")


async def test_keys_cover_every_query_parameter() -> None:
    assert news_list_key("", "hot", 20, "") == "news:list::hot:20:"
    assert news_list_key("gold", "latest", 600, "2024-01-03") == "news:list:gold:latest:600:2024-01-03"
    assert news_dates_key("baidu", 31) == "news:dates:baidu:31"


async def test_memory_fallback_expires_entries(monkeypatch) -> None:
    assert redis_client.get_redis() is None
    clock = FakeClock()
    monkeypatch.setattr(redis_client, "time", clock)
    cache = NewsCache()

    assert await cache.set_json("news:dates:x:31", ["2024-01-03"], ttl=60) is True
    assert await cache.get_json("news:dates:x:31") == ["2024-01-03"]

    clock.now += 61
    assert await cache.get_json("news:dates:x:31") is None


async def test_memory_fallback_can_be_disabled() -> None:
    cache = NewsCache(use_memory_fallback=False)
    assert await cache.set_json("k", [1]) is False
    assert await cache.get_json("k") is None


async def test_redis_round_trip_with_ttl() -> None:
    fake = FakeRedis()
    cache = NewsCache(redis_client=fake)

    assert await cache.set_json("k", [{"title": "标题"}], ttl=300) is True
    assert fake.expiry["k"] == 300
    assert await cache.get_json("k") == [{"title": "标题"}]


async def test_redis_errors_are_misses() -> None:
    cache = NewsCache(redis_client=DownRedis())
    assert await cache.set_json("k", [1]) is False
    assert await cache.get_json("k") is None


async def test_undecodable_entry_is_a_miss() -> None:
    fake = FakeRedis()
    fake.data["k"] = "{not json"
    assert await NewsCache(redis_client=fake).get_json("k") is None


async def test_memory_fallback_sweeps_expired_keys_on_write(monkeypatch) -> None:
    clock = FakeClock()
    monkeypatch.setattr(redis_client, "time", clock)
    cache = NewsCache()

    for limit in (10, 20, 30):
        await cache.set_json(news_list_key("github", "hot", limit), [limit], ttl=60)
    clock.now += 61

    await cache.set_json(news_list_key("baidu", "latest", 20), [1], ttl=60)

    assert list(cache._memory_cache) == ["news:list:baidu:latest:20:"]


async def test_memory_fallback_is_bounded(monkeypatch) -> None:
    monkeypatch.setattr(redis_client, "MEMORY_CACHE_MAX_ENTRIES", 3)
    cache = NewsCache()

    for i in range(5):
        await cache.set_json(f"k{i}", [i], ttl=300 + i)

    assert sorted(cache._memory_cache) == ["k2", "k3", "k4"]
    assert await cache.get_json("k4") == [4]
