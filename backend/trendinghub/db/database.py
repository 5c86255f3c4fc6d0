"""
Database connection and engine management.

Uses SQLite with aiosqlite by default; PostgreSQL via asyncpg when
DATABASE_URL points at it.
"""

import asyncio
import os
import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from trendinghub.core.config import Settings, settings as default_settings
from trendinghub.db.models import Base
from trendinghub.services.base import StoreUnavailableError

logger = logging.getLogger(__name__)

# Default data directory: backend/data
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data")


def build_database_url(settings: Optional[Settings] = None) -> str:
    """Resolve the async database URL from settings."""
    settings = settings or default_settings

    if settings.database_url:
        return settings.database_url

    sqlite_path = settings.sqlite_path
    if not sqlite_path:
        os.makedirs(DATA_DIR, exist_ok=True)
        sqlite_path = os.path.join(DATA_DIR, "trendinghub.db")
    return f"sqlite+aiosqlite:///{sqlite_path}"


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for a URL.

    SQLite needs check_same_thread=False for async and a busy timeout so
    concurrent writers wait instead of failing with "database is locked".
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_async_engine(database_url, echo=echo, **kwargs)

    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


async def connect_with_retry(
    engine: AsyncEngine,
    retries: int = 10,
    delay: float = 2.0,
) -> None:
    """
    Verify the database is reachable, retrying with a fixed delay.

    Raises StoreUnavailableError once retries are exhausted.
    """
    retries = max(1, retries)
    last_error: Optional[Exception] = None

    for attempt in range(1, retries + 1):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            if attempt > 1:
                logger.info(f"Database reachable after {attempt} attempts")
            return
        except Exception as e:
            last_error = e
            logger.warning(f"Database connect attempt {attempt}/{retries} failed: {e}")
            if attempt < retries:
                await asyncio.sleep(delay)

    raise StoreUnavailableError(
        "NewsStore",
        f"Database unreachable after {retries} attempts",
        {"error": str(last_error)},
    )


async def init_schema(engine: AsyncEngine, metadata=Base.metadata) -> None:
    """
    Create all tables (shards + auxiliary).
    Called once after connecting.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info(f"Database schema ready ({len(metadata.tables)} tables)")
    except Exception as e:
        logger.error(f"Failed to initialize database schema: {e}")
        raise
