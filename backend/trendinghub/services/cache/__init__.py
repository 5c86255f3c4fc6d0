"""
Cache module for TrendingHub.

Provides Redis caching for list query results.
"""

from trendinghub.services.cache.redis_client import (
    NewsCache,
    get_news_cache,
    init_redis,
    close_redis,
    news_list_key,
    news_dates_key,
)

__all__ = [
    "NewsCache",
    "get_news_cache",
    "init_redis",
    "close_redis",
    "news_list_key",
    "news_dates_key",
]
