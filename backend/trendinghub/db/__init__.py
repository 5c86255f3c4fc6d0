"""
Database module for TrendingHub.

Provides async SQLite/PostgreSQL engines, per-channel shard tables and
auxiliary models.
"""

from trendinghub.db.channels import (
    ChannelShard,
    CompositeView,
    CHANNELS,
    COMPOSITE_VIEWS,
    parse_channel,
)
from trendinghub.db.models import (
    Base,
    Channel,
    AShareStock,
    build_news_shard,
    build_news_shards,
)
from trendinghub.db.database import (
    build_database_url,
    create_engine,
    connect_with_retry,
    init_schema,
)

__all__ = [
    "ChannelShard",
    "CompositeView",
    "CHANNELS",
    "COMPOSITE_VIEWS",
    "parse_channel",
    "Base",
    "Channel",
    "AShareStock",
    "build_news_shard",
    "build_news_shards",
    "build_database_url",
    "create_engine",
    "connect_with_retry",
    "init_schema",
]
