"""
X (Twitter) Trends Source

Trending topics from the trends24.in aggregator. Search links are rewritten
from twitter.com to x.com.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import unquote_plus

from bs4 import BeautifulSoup

from trendinghub.schemas.news import ChannelCode, RawItem
from trendinghub.services.base import SourceFetchError
from trendinghub.services.sources.http import HTML_MAX_BYTES, HttpSource

logger = logging.getLogger(__name__)

X_TRENDS_URLS = ("https://trends24.in/", "https://trends24.in/united-states/")
X_TRENDS_MAX_ITEMS = 50
MAX_TITLE_CHARS = 200

_SEARCH_HREF = re.compile(r'href="(https://twitter\.com/search\?q=([^"]+))"')


def to_x_search_url(href: str) -> str:
    prefix = "https://twitter.com/search?"
    if href.startswith(prefix):
        return "https://x.com/search?" + href[len(prefix):]
    return href


def parse_trend_links(html: str) -> list[tuple[str, str]]:
    """(title, x.com url) pairs in page order, deduplicated by link."""
    soup = BeautifulSoup(html, "html.parser")
    seen = set()
    trends = []

    for link in soup.select('a[href*="twitter.com/search"]'):
        href = (link.get("href") or "").strip()
        title = link.get_text(strip=True)
        if not href or not title or len(title) > MAX_TITLE_CHARS or href in seen:
            continue
        seen.add(href)
        trends.append((title, to_x_search_url(href)))

    # Markup without anchor text: derive titles from the q= parameter
    if not trends:
        for href, query in _SEARCH_HREF.findall(html):
            if href in seen:
                continue
            seen.add(href)
            title = unquote_plus(query)[:MAX_TITLE_CHARS]
            trends.append((title, to_x_search_url(href)))

    return trends


def trends_to_items(trends: list[tuple[str, str]], now: Optional[datetime] = None) -> list[RawItem]:
    now = now or datetime.now(timezone.utc)
    return [
        RawItem(
            title=title,
            url=url,
            source=ChannelCode.X.value,
            description="X (Twitter) 热搜话题，点击在 X 上搜索。",
            published_at=now,
            hot_score=float(max(X_TRENDS_MAX_ITEMS - i, 1)),
            raw_data={"rank": i + 1},
        )
        for i, (title, url) in enumerate(trends[:X_TRENDS_MAX_ITEMS])
    ]


class XTrendsSource(HttpSource):
    """X trending topics via trends24.in."""

    timeout_seconds = 15

    @property
    def name(self) -> str:
        return "x_trends"

    async def fetch(self) -> list[RawItem]:
        logger.info("Fetching X trends...")
        last_error: Optional[SourceFetchError] = None

        for url in X_TRENDS_URLS:
            try:
                body = await self.get_bytes(url, HTML_MAX_BYTES)
            except SourceFetchError as e:
                logger.warning(f"x_trends: {url} failed: {e}")
                last_error = e
                continue
            trends = parse_trend_links(body.decode("utf-8", errors="replace"))
            if trends:
                return trends_to_items(trends)

        if last_error is not None:
            raise last_error
        logger.info("x_trends: got 0 items")
        return []
