"""
Sources module for TrendingHub.

Concrete ingestion sources and their registry.
"""

from trendinghub.services.sources.interface import Source, SourceJob
from trendinghub.services.sources.http import HttpSource, read_limited, fetch_bytes
from trendinghub.services.sources.baidu_hot import BaiduHotSource
from trendinghub.services.sources.gold_price import GoldPriceSource, is_allowed_gold_api_url
from trendinghub.services.sources.ashare_index import AShareSource, code_to_secid
from trendinghub.services.sources.hackernews import HackerNewsSource
from trendinghub.services.sources.github_trending import GitHubTrendingSource
from trendinghub.services.sources.x_trends import XTrendsSource
from trendinghub.services.sources.registry import build_source_jobs, build_ashare_gate

__all__ = [
    "Source",
    "SourceJob",
    "HttpSource",
    "read_limited",
    "fetch_bytes",
    "BaiduHotSource",
    "GoldPriceSource",
    "is_allowed_gold_api_url",
    "AShareSource",
    "code_to_secid",
    "HackerNewsSource",
    "GitHubTrendingSource",
    "XTrendsSource",
    "build_source_jobs",
    "build_ashare_gate",
]
