"""
Baidu Hot Search Source

Parses the realtime board's embedded s-data JSON.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Optional

from trendinghub.schemas.news import ChannelCode, RawItem
from trendinghub.services.base import SourceFetchError
from trendinghub.services.sources.http import HTML_MAX_BYTES, HttpSource

logger = logging.getLogger(__name__)

BAIDU_BOARD_URL = "https://top.baidu.com/board?tab=realtime"

_S_DATA = re.compile(r"<!--s-data:(.*?)-->", re.S)


def parse_baidu_board(html: str, now: Optional[datetime] = None) -> list[RawItem]:
    """
    Extract hot entries from the board page.

    Pinned entries are skipped; hot_score is the reverse rank so the top
    entry scores highest.
    """
    match = _S_DATA.search(html)
    if not match:
        logger.warning("baidu_hot: failed to extract s-data JSON")
        return []

    try:
        state = json.loads(match.group(1))
    except ValueError as e:
        raise SourceFetchError("baidu_hot", f"Invalid s-data JSON: {e}") from e

    cards = (state.get("data") or {}).get("cards") or []
    if not cards:
        return []
    contents = cards[0].get("content") or []

    now = now or datetime.now(timezone.utc)
    items = []
    for idx, entry in enumerate(contents):
        if entry.get("isTop"):
            continue
        title = (entry.get("word") or "").strip()
        if not title:
            continue

        items.append(RawItem(
            title=title,
            url=(entry.get("rawUrl") or "").strip() or BAIDU_BOARD_URL,
            source=ChannelCode.BAIDU.value,
            description=(entry.get("desc") or "").strip() or title,
            published_at=now,
            hot_score=float(len(contents) - idx),
            raw_data={"rank": idx + 1},
        ))

    return items


class BaiduHotSource(HttpSource):
    """Baidu realtime hot search list."""

    @property
    def name(self) -> str:
        return "baidu_hot"

    async def fetch(self) -> list[RawItem]:
        logger.info("Fetching Baidu hot search...")
        body = await self.get_bytes(BAIDU_BOARD_URL, HTML_MAX_BYTES)
        items = parse_baidu_board(body.decode("utf-8", errors="replace"))
        if not items:
            logger.info("baidu_hot: no items parsed from s-data JSON")
        return items
