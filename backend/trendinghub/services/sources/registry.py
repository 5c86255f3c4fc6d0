"""
Source registry: the configured sources with their schedules and gates.
"""

import logging
from datetime import datetime
from typing import Optional

from trendinghub.core.clock import civil_date_str
from trendinghub.core.config import Settings, settings as default_settings
from trendinghub.core.market_hours import parse_sessions
from trendinghub.schemas.news import ChannelCode
from trendinghub.services.gate.trading_session import TradingSessionGate
from trendinghub.services.sources.ashare_index import AShareSource
from trendinghub.services.sources.baidu_hot import BaiduHotSource
from trendinghub.services.sources.github_trending import GitHubTrendingSource
from trendinghub.services.sources.gold_price import GoldPriceSource
from trendinghub.services.sources.hackernews import HackerNewsSource
from trendinghub.services.sources.interface import SourceJob
from trendinghub.services.sources.x_trends import XTrendsSource

logger = logging.getLogger(__name__)


def build_ashare_gate(store, settings: Optional[Settings] = None) -> TradingSessionGate:
    """Trading-session gate whose backfill check asks the store about today."""
    settings = settings or default_settings

    async def has_today_data(now: datetime) -> bool:
        return await store.has_data_for_date(ChannelCode.ASHARE.value, civil_date_str(now))

    return TradingSessionGate(
        sessions=parse_sessions(settings.ashare_sessions),
        has_today_data=has_today_data if store is not None else None,
    )


def build_source_jobs(store=None, settings: Optional[Settings] = None) -> list[SourceJob]:
    """One job per source; the A-share job is gated by trading sessions."""
    settings = settings or default_settings
    list_codes = store.list_ashare_stock_codes if store is not None else None

    jobs = [
        SourceJob(BaiduHotSource(), settings.baidu_cron),
        SourceJob(GoldPriceSource(), settings.gold_cron),
        SourceJob(
            AShareSource(list_stock_codes=list_codes),
            settings.ashare_cron,
            gate=build_ashare_gate(store, settings),
        ),
        SourceJob(HackerNewsSource(), settings.hackernews_cron),
        SourceJob(GitHubTrendingSource(), settings.github_cron),
        SourceJob(XTrendsSource(), settings.x_cron),
    ]
    logger.info(f"Configured sources: {', '.join(f'{j.name} ({j.cron_spec})' for j in jobs)}")
    return jobs
