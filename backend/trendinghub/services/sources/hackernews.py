"""
Hacker News Source

Top stories from the Firebase API; item details fetched with a bounded
worker pool.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone

from trendinghub.schemas.news import ChannelCode, RawItem
from trendinghub.services.base import SourceFetchError
from trendinghub.services.sources.http import JSON_MAX_BYTES, HttpSource

logger = logging.getLogger(__name__)

HN_BASE_URL = "https://hacker-news.firebaseio.com/v0"
HN_MAX_ITEMS = 30
HN_CONCURRENCY = 10
HN_ITEM_TIMEOUT_SECONDS = 5


def hn_item_to_raw(item: dict, rank: int) -> RawItem:
    item_url = item.get("url") or f"https://news.ycombinator.com/item?id={item['id']}"
    published = item.get("time")
    return RawItem(
        title=item["title"],
        url=item_url,
        source=ChannelCode.HACKERNEWS.value,
        description=item["title"],
        published_at=datetime.fromtimestamp(published, tz=timezone.utc) if published else datetime.now(timezone.utc),
        hot_score=float(item.get("score") or 0),
        raw_data={
            "hn_id": item["id"],
            "author": item.get("by"),
            "comments": item.get("descendants", 0),
            "score": item.get("score", 0),
            "rank": rank,
        },
    )


class HackerNewsSource(HttpSource):
    """Hacker News top stories."""

    timeout_seconds = 10

    def __init__(self, max_items: int = HN_MAX_ITEMS, concurrency: int = HN_CONCURRENCY, **kwargs):
        super().__init__(**kwargs)
        self.max_items = max_items
        self.concurrency = concurrency

    @property
    def name(self) -> str:
        return "hackernews_top"

    async def _get_json(self, url: str, timeout: float = None):
        body = await self.get_bytes(url, JSON_MAX_BYTES, timeout=timeout)
        try:
            return json.loads(body)
        except ValueError as e:
            raise SourceFetchError(self.name, f"Invalid JSON from {url}: {e}") from e

    async def fetch(self) -> list[RawItem]:
        logger.info("Fetching Hacker News top stories...")
        ids = await self._get_json(f"{HN_BASE_URL}/topstories.json")
        if not isinstance(ids, list):
            raise SourceFetchError(self.name, "Unexpected topstories payload")
        ids = ids[: self.max_items]

        semaphore = asyncio.Semaphore(self.concurrency)
        lock = asyncio.Lock()
        collected: list[tuple[int, dict]] = []

        async def fetch_item(idx: int, item_id: int) -> None:
            async with semaphore:
                try:
                    item = await self._get_json(f"{HN_BASE_URL}/item/{item_id}.json", timeout=HN_ITEM_TIMEOUT_SECONDS)
                except SourceFetchError as e:
                    logger.warning(f"hackernews: item {item_id} failed: {e}")
                    return
            if not isinstance(item, dict) or not item.get("title") or item.get("type") != "story":
                return
            async with lock:
                collected.append((idx, item))

        await asyncio.gather(*(fetch_item(i, item_id) for i, item_id in enumerate(ids)))

        collected.sort(key=lambda pair: pair[0])
        items = [hn_item_to_raw(item, idx + 1) for idx, item in collected]
        if not items:
            logger.info("hackernews: no items fetched")
        return items
