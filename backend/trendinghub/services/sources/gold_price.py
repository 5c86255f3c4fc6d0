"""
Gold Price Source

Spot gold XAU/CNY from the goldprice.org rates endpoint. An override URL is
only honoured for allow-listed https hosts.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from trendinghub.core.config import settings
from trendinghub.schemas.news import ChannelCode, RawItem
from trendinghub.services.base import SourceFetchError
from trendinghub.services.sources.http import GOLD_MAX_BYTES, HttpSource

logger = logging.getLogger(__name__)

DEFAULT_GOLD_API_URL = "https://data-asg.goldprice.org/dbXRates/CNY"
GOLD_ALLOWED_HOSTS = ("data-asg.goldprice.org", "data-goldprice.org")


def is_allowed_gold_api_url(raw: str) -> bool:
    """https only, host (minus a leading www.) must be allow-listed."""
    try:
        parsed = urlparse(raw)
    except ValueError:
        return False
    if parsed.scheme != "https":
        return False
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host in GOLD_ALLOWED_HOSTS


def resolve_gold_api_url(override: Optional[str]) -> str:
    if not override:
        return DEFAULT_GOLD_API_URL
    if not is_allowed_gold_api_url(override):
        logger.warning("gold_price: GOLD_API_URL host not in allow-list, using default")
        return DEFAULT_GOLD_API_URL
    return override


def parse_gold_payload(payload: dict, api_url: str) -> list[RawItem]:
    """One item for the first quote; tsj (ms) is the quote time when present."""
    quotes = payload.get("items") or []
    if not quotes:
        logger.warning("gold_price: response has no items")
        return []

    price = float(quotes[0].get("xauPrice") or 0.0)
    tsj = payload.get("tsj") or 0
    published_at = (
        datetime.fromtimestamp(tsj / 1000, tz=timezone.utc) if tsj else datetime.now(timezone.utc)
    )

    return [RawItem(
        title="黄金价格（XAU/人民币）",
        url=api_url,
        source=ChannelCode.GOLD.value,
        summary="现货黄金 XAU/CNY 最新报价（元/盎司）",
        description="国际现货黄金（XAU）人民币（CNY）实时价格，单位元/盎司，仅供参考。",
        published_at=published_at,
        hot_score=price,
        raw_data={"price": price, "ts": tsj, "currency": quotes[0].get("curr", "CNY")},
    )]


class GoldPriceSource(HttpSource):
    """Spot gold price in CNY."""

    timeout_seconds = 5

    def __init__(self, api_url: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_url = resolve_gold_api_url(api_url if api_url is not None else settings.gold_api_url)

    @property
    def name(self) -> str:
        return "gold_price"

    async def fetch(self) -> list[RawItem]:
        body = await self.get_bytes(self.api_url, GOLD_MAX_BYTES)
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise SourceFetchError(self.name, f"Invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise SourceFetchError(self.name, "Unexpected payload shape")
        return parse_gold_payload(payload, self.api_url)
