"""
SQLAlchemy models for TrendingHub database.

- One news shard table per channel (same columns, built from CHANNELS)
- Channel registry
- A-share watchlist
"""

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import (
    Column,
    String,
    Float,
    DateTime,
    Text,
    Index,
    JSON,
    Table,
)
from sqlalchemy.orm import DeclarativeBase

from trendinghub.db.channels import ChannelShard
from trendinghub.schemas.news import ChannelCode


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Channel(Base):
    """
    Registry of ingestion channels.
    Ensured at startup; purely descriptive.
    """
    __tablename__ = "channels"

    code = Column(String(64), primary_key=True)
    name = Column(String(128), nullable=False)
    base_url = Column(String(256), default="")
    status = Column(String(32), default="active", index=True)  # active, disabled

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class AShareStock(Base):
    """
    A-share watchlist.
    Quotes for these codes are collected alongside the indexes.
    """
    __tablename__ = "ashare_stocks"

    code = Column(String(16), primary_key=True)  # 6-digit code, e.g. 600519
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)


def build_news_shard(table_name: str, metadata=Base.metadata) -> Table:
    """
    Create one news shard table.

    url is unique per shard (upsert key); id is the url fingerprint and is
    never rewritten once inserted.
    """
    return Table(
        table_name,
        metadata,
        Column("id", String(40), primary_key=True),
        Column("title", String(512), nullable=False),
        Column("url", String(1024), nullable=False, unique=True),
        Column("source", String(64), nullable=False),
        Column("description", Text, default=""),
        Column("published_at", DateTime(timezone=True), nullable=False),
        Column("published_date", String(10), nullable=True),  # YYYY-MM-DD, civil day
        Column("hot_score", Float, default=0.0),
        Column("extra_data", JSON, nullable=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("updated_at", DateTime(timezone=True), nullable=False),
        Index(f"ix_{table_name}_published_at", "published_at"),
        Index(f"ix_{table_name}_hot_score", "hot_score"),
        Index(f"ix_{table_name}_published_date", "published_date"),
    )


def build_news_shards(
    channels: Sequence[ChannelShard],
    metadata=Base.metadata,
) -> dict[ChannelCode, Table]:
    """Build (or reuse) the shard table for every configured channel."""
    shards = {}
    for channel in channels:
        existing = metadata.tables.get(channel.table_name)
        shards[channel.code] = existing if existing is not None else build_news_shard(channel.table_name, metadata)
    return shards
