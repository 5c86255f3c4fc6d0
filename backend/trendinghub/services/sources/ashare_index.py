"""
A-Share Source

- Index quotes (SSE Composite, SZSE Component, ChiNext) from Sina, GBK encoded
- Watchlist stock quotes from Eastmoney, one request per symbol, bounded fan-out

Runs behind the trading-session gate.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from trendinghub.schemas.news import ChannelCode, RawItem
from trendinghub.services.base import SourceFetchError
from trendinghub.services.sources.http import JSON_MAX_BYTES, HttpSource

logger = logging.getLogger(__name__)

SINA_INDEX_URL = "https://hq.sinajs.cn/list=s_sh000001,s_sz399001,s_sz399006"
SINA_HEADERS = {"Referer": "http://finance.sina.com.cn/"}
EASTMONEY_QUOTE_URL = "https://push2.eastmoney.com/api/qt/stock/get?secid={secid}&fltt=2&fields=f43,f57,f58,f170"

STOCK_CONCURRENCY = 5

ListStockCodes = Callable[[], Awaitable[list[str]]]


def code_to_market(code: str) -> str:
    """Shanghai for codes starting with 6 or 9, Shenzhen otherwise."""
    return "sh" if code[:1] in ("6", "9") else "sz"


def code_to_secid(code: str) -> str:
    """Eastmoney secid: 1.xxxxxx for Shanghai, 0.xxxxxx for Shenzhen."""
    if not code:
        return ""
    return ("1." if code_to_market(code) == "sh" else "0.") + code


def parse_stock_codes(raw: str) -> list[str]:
    """Split a comma separated code list, dropping blanks."""
    return [c.strip() for c in (raw or "").split(",") if c.strip()]


def parse_sina_quotes(body: str, now: Optional[datetime] = None) -> list[RawItem]:
    """
    Parse `var hq_str_s_sh000001="name,price,change,pct,volume,amount";` lines.
    Lines that do not parse are skipped.
    """
    now = now or datetime.now(timezone.utc)
    items = []

    for line in body.split(";"):
        line = line.strip()
        start = line.find("hq_str_")
        if start < 0:
            continue
        start += len("hq_str_")
        eq = line.find('="', start)
        if eq < 0:
            continue

        code = line[start:eq]
        parts = line[eq + 2:].rstrip('"').split(",")
        if len(parts) < 2:
            continue
        name, price_str = parts[0].strip(), parts[1].strip()
        if not name or not price_str:
            continue
        try:
            price = float(price_str)
        except ValueError:
            continue

        change = parts[3].strip() if len(parts) >= 4 else ""
        desc = f"{name} {price_str}"
        if change:
            desc += f" {change}%"

        items.append(RawItem(
            title=name,
            url=f"https://finance.sina.com.cn/realstock/index/{code}.html",
            source=ChannelCode.ASHARE.value,
            description=desc + "，A 股指数实时行情，数据来自新浪财经，仅供参考。",
            published_at=now,
            hot_score=price,
            raw_data={"kind": "index", "code": code, "price": price, "change": change},
        ))

    return items


def parse_eastmoney_quote(code: str, payload: dict, now: Optional[datetime] = None) -> Optional[RawItem]:
    """One watchlist quote; None when the symbol has no usable price."""
    data = payload.get("data") or {}
    try:
        price = float(data.get("f43"))
    except (TypeError, ValueError):
        return None

    name = str(data.get("f58") or code).strip()
    change = data.get("f170")
    change = "" if change in (None, "-") else str(change)
    desc = f"{name} {price:g}"
    if change:
        desc += f" {change}%"

    return RawItem(
        title=name,
        url=f"https://quote.eastmoney.com/unify/r/{code_to_secid(code)}",
        source=ChannelCode.ASHARE.value,
        description=desc + "，自选股实时行情，数据来自东方财富，仅供参考。",
        published_at=now or datetime.now(timezone.utc),
        hot_score=price,
        raw_data={"kind": "stock", "code": code, "price": price, "change": change},
    )


class AShareSource(HttpSource):
    """A-share index quotes plus watchlist stock quotes."""

    def __init__(self, list_stock_codes: Optional[ListStockCodes] = None, **kwargs):
        super().__init__(**kwargs)
        self.list_stock_codes = list_stock_codes

    @property
    def name(self) -> str:
        return "ashare_index"

    async def fetch(self) -> list[RawItem]:
        logger.info("Fetching A-share quotes...")
        items = await self._fetch_indexes()

        codes = await self.list_stock_codes() if self.list_stock_codes else []
        if codes:
            items.extend(await self._fetch_stocks(codes))

        return items

    async def _fetch_indexes(self) -> list[RawItem]:
        body = await self.get_bytes(SINA_INDEX_URL, JSON_MAX_BYTES, headers=SINA_HEADERS)
        text = body.decode("gbk", errors="replace")
        items = parse_sina_quotes(text)
        if not items:
            preview = text[:300] + ("..." if len(text) > 300 else "")
            logger.warning(f"ashare_index: 0 index quotes, body preview: {preview}")
        return items

    async def _fetch_stocks(self, codes: list[str]) -> list[RawItem]:
        """Per-symbol fan-out; a failing symbol is logged and skipped."""
        semaphore = asyncio.Semaphore(STOCK_CONCURRENCY)
        lock = asyncio.Lock()
        results: dict[str, RawItem] = {}

        async def fetch_one(code: str) -> None:
            async with semaphore:
                try:
                    body = await self.get_bytes(
                        EASTMONEY_QUOTE_URL.format(secid=code_to_secid(code)),
                        JSON_MAX_BYTES,
                        timeout=5,
                    )
                    item = parse_eastmoney_quote(code, json.loads(body))
                except (SourceFetchError, ValueError) as e:
                    logger.warning(f"ashare_index: quote {code} failed: {e}")
                    return
            if item is not None:
                async with lock:
                    results[code] = item

        await asyncio.gather(*(fetch_one(code) for code in codes))
        return [results[code] for code in codes if code in results]
