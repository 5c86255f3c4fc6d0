from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio

from trendinghub.core.clock import civil_date_str
from trendinghub.db.database import create_engine, init_schema
from trendinghub.schemas.news import NormalizedRecord, RawItem
from trendinghub.services.processing.normalizer import fingerprint
from trendinghub.services.store.service import NewsStore


class FakeCache:
    """Dict-backed stand-in for NewsCache that records calls."""

    def __init__(self) -> None:
        self.data: Dict[str, Any] = {}
        self.gets: list[str] = []
        self.sets: list[str] = []

    async def get_json(self, key: str) -> Optional[Any]:
        self.gets.append(key)
        return self.data.get(key)

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self.sets.append(key)
        self.data[key] = value
        return True


class BrokenCache:
    """Cache whose backend is always down."""

    async def get_json(self, key: str) -> Optional[Any]:
        raise ConnectionError("cache unreachable")

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        raise ConnectionError("cache unreachable")


def make_record(
    url: str,
    source: str = "github",
    title: str = "title",
    hot_score: float = 0.0,
    published_at: Optional[datetime] = None,
    published_date: Optional[str] = None,
    description: str = "desc",
) -> NormalizedRecord:
    published_at = published_at or datetime.now(timezone.utc)
    return NormalizedRecord(
        id=fingerprint(url),
        title=title,
        url=url,
        source=source,
        description=description,
        published_at=published_at,
        published_date=published_date if published_date is not None else civil_date_str(published_at),
        hot_score=hot_score,
        extra_data={},
    )


def make_raw(url: str, source: str = "baidu", title: str = "title", **kwargs: Any) -> RawItem:
    kwargs.setdefault("published_at", datetime.now(timezone.utc))
    return RawItem(title=title, url=url, source=source, **kwargs)


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest_asyncio.fixture
async def store(tmp_path) -> NewsStore:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    news_store = NewsStore(engine)
    await init_schema(engine)
    yield news_store
    await news_store.close()


@pytest_asyncio.fixture
async def cached_store(tmp_path, fake_cache: FakeCache) -> NewsStore:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'cached.db'}")
    news_store = NewsStore(engine, cache=fake_cache)
    await init_schema(engine)
    yield news_store
    await news_store.close()
