"""
GitHub Trending Source

Scrapes https://github.com/trending with BeautifulSoup.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from bs4 import BeautifulSoup

from trendinghub.schemas.news import ChannelCode, RawItem
from trendinghub.services.sources.http import HTML_MAX_BYTES, HttpSource

logger = logging.getLogger(__name__)

GITHUB_TRENDING_URL = "https://github.com/trending"
FALLBACK_DESCRIPTION = "GitHub Trending 仓库，点击标题前往查看详情。"


def parse_stars(text: str) -> int:
    """Parse star counts like "1,234" or "12.3k"; 0 when unreadable."""
    text = (text or "").replace(",", "").strip()
    if not text:
        return 0

    multiplier = 1.0
    if text[-1] in ("k", "K"):
        multiplier = 1000.0
        text = text[:-1].strip()

    try:
        return int(float(text) * multiplier)
    except ValueError:
        return 0


def parse_trending_page(html: str, now: Optional[datetime] = None) -> list[RawItem]:
    soup = BeautifulSoup(html, "html.parser")
    now = now or datetime.now(timezone.utc)
    items = []

    for row in soup.select("article.Box-row"):
        link = row.select_one("h2 a")
        if link is None or not link.get("href"):
            continue

        repo_name = " ".join(link.get_text().split()).replace(" / ", "/")
        stars_el = row.select_one('a[href$="/stargazers"]')
        stars_text = stars_el.get_text(strip=True) if stars_el else ""
        stars = parse_stars(stars_text)
        desc_el = row.select_one("p")
        page_desc = desc_el.get_text(strip=True) if desc_el else ""

        items.append(RawItem(
            title=repo_name,
            url="https://github.com" + link["href"].strip(),
            source=ChannelCode.GITHUB.value,
            summary=f"{repo_name} · {stars_text} stars" if stars > 0 else repo_name,
            description=page_desc or FALLBACK_DESCRIPTION,
            published_at=now,
            hot_score=float(stars),
            raw_data={"stars": stars},
        ))

    return items


class GitHubTrendingSource(HttpSource):
    """GitHub Trending repositories."""

    @property
    def name(self) -> str:
        return "github_trending"

    async def fetch(self) -> list[RawItem]:
        logger.info("Fetching GitHub Trending...")
        body = await self.get_bytes(GITHUB_TRENDING_URL, HTML_MAX_BYTES)
        items = parse_trending_page(body.decode("utf-8", errors="replace"))
        if not items:
            logger.info("github_trending: got 0 items")
        return items
