"""
Store module for TrendingHub.

Channel-sharded persistence with cache-aside list queries.
"""

from trendinghub.services.store.service import (
    NewsStore,
    normalize_stock_code,
    clamp_limit,
    parse_sort,
)

__all__ = [
    "NewsStore",
    "normalize_stock_code",
    "clamp_limit",
    "parse_sort",
]
