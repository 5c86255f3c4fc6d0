"""
News Store

Sharded persistence for normalized records: one table per channel,
upserted by url, with a read-through cache in front of the list queries.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import Table, and_, delete, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from trendinghub.core.clock import (
    civil_date_str,
    civil_day_bounds,
    civil_start_of_day,
    ensure_utc,
    parse_civil_date,
)
from trendinghub.core.config import Settings, settings as default_settings
from trendinghub.db.channels import (
    CHANNELS,
    COMPOSITE_VIEWS,
    ChannelShard,
    CompositeView,
    parse_channel,
)
from trendinghub.db.database import (
    build_database_url,
    connect_with_retry,
    create_engine,
    init_schema,
)
from trendinghub.db.models import AShareStock, Base, Channel, build_news_shards, utcnow
from trendinghub.schemas.news import ChannelCode, NewsRecord, NewsSort, NormalizedRecord
from trendinghub.services.base import PersistenceError
from trendinghub.services.cache.redis_client import NewsCache, news_dates_key, news_list_key

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 1000
DEFAULT_DATES_LIMIT = 31
MAX_DATES_LIMIT = 365

# Legacy rows (no published_date) scanned per shard when listing dates
LEGACY_SCAN_LIMIT = 5000

# Rows per INSERT; keeps SQLite under its bound-parameter limit
UPSERT_CHUNK_SIZE = 80

# Updated on conflict; id and created_at are never rewritten
MUTABLE_COLUMNS = (
    "title",
    "description",
    "hot_score",
    "published_at",
    "published_date",
    "extra_data",
    "updated_at",
)


def clamp_limit(limit: Optional[int], maximum: int, default: int) -> int:
    """Limits outside 1..maximum fall back to the default."""
    if limit is None or limit <= 0 or limit > maximum:
        return default
    return limit


def parse_sort(sort: Optional[str]) -> NewsSort:
    """Anything other than "hot" means latest."""
    if sort and sort.strip().lower() == NewsSort.HOT.value:
        return NewsSort.HOT
    return NewsSort.LATEST


def sort_key(sort: NewsSort):
    """Python-side ordering matching the SQL ORDER BY (use with reverse=True)."""
    if sort == NewsSort.HOT:
        return lambda r: (r.hot_score, r.published_at, r.id)
    return lambda r: (r.published_at, r.id)


def normalize_stock_code(code: Optional[str]) -> str:
    """
    Normalize an A-share code to 6 digits.

    Shorter numeric codes are left-padded with zeros; anything non-numeric
    or longer than 6 digits returns "".
    """
    code = (code or "").strip()
    if not code or not code.isascii() or not code.isdigit():
        return ""
    if len(code) > 6:
        return ""
    return code.zfill(6)


class NewsStore:
    """
    Channel-sharded news store.

    Writes:
    - save_batch(records) → upsert by url into each record's channel shard

    Reads (cached):
    - list_news(channel, sort, limit, date)
    - list_published_dates(channel, limit)
    """

    def __init__(
        self,
        engine: AsyncEngine,
        channels: Sequence[ChannelShard] = CHANNELS,
        composites: Sequence[CompositeView] = COMPOSITE_VIEWS,
        cache: Optional[NewsCache] = None,
        cache_ttl: int = 300,
        metadata=Base.metadata,
    ):
        self.engine = engine
        self.channels = tuple(channels)
        self.shards: dict[ChannelCode, Table] = build_news_shards(self.channels, metadata)
        self.composites = {c.code: c for c in composites if all(p in self.shards for p in c.parts)}
        self.cache = cache
        self.cache_ttl = cache_ttl
        self._metadata = metadata

    @classmethod
    async def connect(
        cls,
        settings: Optional[Settings] = None,
        cache: Optional[NewsCache] = None,
        channels: Sequence[ChannelShard] = CHANNELS,
    ) -> "NewsStore":
        """
        Connect to the database (with bounded retries) and create the schema.
        Raises StoreUnavailableError when the database never becomes reachable.
        """
        settings = settings or default_settings
        database_url = build_database_url(settings)
        engine = create_engine(database_url)

        try:
            await connect_with_retry(
                engine,
                retries=settings.db_connect_retries,
                delay=settings.db_connect_delay_seconds,
            )
            store = cls(engine, channels=channels, cache=cache, cache_ttl=settings.cache_ttl_seconds)
            await init_schema(engine, store._metadata)
        except Exception:
            await engine.dispose()
            raise

        logger.info(f"News store connected ({engine.dialect.name}, {len(store.shards)} shards)")
        return store

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self.engine.dispose()
        logger.info("Database connections closed")

    # ============ Helpers ============

    def _insert(self, table):
        if self.engine.dialect.name == "postgresql":
            return pg_insert(table)
        return sqlite_insert(table)

    def _resolve(self, channel: str) -> Optional[ChannelCode]:
        code = parse_channel(channel)
        if code is None or code not in self.shards:
            return None
        return code

    @staticmethod
    def _day_clause(table: Table, day: str):
        """Rows on a civil day: stored published_date, or derived for legacy rows."""
        start, end = civil_day_bounds(day)
        legacy = or_(table.c.published_date.is_(None), table.c.published_date == "")
        return or_(
            table.c.published_date == day,
            and_(legacy, table.c.published_at >= start, table.c.published_at < end),
        )

    @staticmethod
    def _order_by(table: Table, sort: NewsSort):
        if sort == NewsSort.HOT:
            return (table.c.hot_score.desc(), table.c.published_at.desc(), table.c.id.desc())
        return (table.c.published_at.desc(), table.c.id.desc())

    @staticmethod
    def _to_row(record: NormalizedRecord, now: datetime) -> dict[str, Any]:
        published_at = ensure_utc(record.published_at)
        return {
            "id": record.id,
            "title": record.title,
            "url": record.url,
            "source": record.source,
            "description": record.description,
            "published_at": published_at,
            "published_date": record.published_date or civil_date_str(published_at),
            "hot_score": record.hot_score,
            "extra_data": record.extra_data or {},
            "created_at": now,
            "updated_at": now,
        }

    @staticmethod
    def _to_record(row) -> NewsRecord:
        m = row._mapping
        return NewsRecord(
            id=m["id"],
            title=m["title"],
            url=m["url"],
            source=m["source"],
            description=m["description"] or "",
            published_at=ensure_utc(m["published_at"]),
            published_date=m["published_date"] or None,
            hot_score=m["hot_score"] or 0.0,
            extra_data=m["extra_data"] or {},
            created_at=ensure_utc(m["created_at"]) if m["created_at"] else None,
            updated_at=ensure_utc(m["updated_at"]) if m["updated_at"] else None,
        )

    async def _fetch_records(self, stmt) -> list[NewsRecord]:
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [self._to_record(row) for row in result]

    async def _cache_get(self, key: str) -> Optional[Any]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get_json(key)
        except Exception as e:
            logger.debug(f"Cache read failed for {key}: {e}")
            return None

    async def _cache_set(self, key: str, value: Any) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set_json(key, value, ttl=self.cache_ttl)
        except Exception as e:
            logger.debug(f"Cache write failed for {key}: {e}")

    # ============ Write Path ============

    async def save_batch(self, records: Iterable[NormalizedRecord]) -> int:
        """
        Upsert records into their channel shards.

        Records for unknown channels are skipped. Within a batch the last
        record for a url wins. Each channel is committed on its own, so a
        failure leaves already-committed channels in place.

        Returns the number of rows written. Raises PersistenceError.
        """
        grouped: dict[ChannelCode, dict[str, dict[str, Any]]] = {}
        skipped = 0
        now = utcnow()

        for record in records:
            code = self._resolve(record.source)
            if code is None:
                skipped += 1
                continue
            grouped.setdefault(code, {})[record.url] = self._to_row(record, now)

        if skipped:
            logger.warning(f"Skipped {skipped} records for unconfigured channels")

        attempted = sum(len(rows) for rows in grouped.values())
        saved = 0

        for code, rows_by_url in grouped.items():
            table = self.shards[code]
            rows = list(rows_by_url.values())
            try:
                async with self.engine.begin() as conn:
                    for i in range(0, len(rows), UPSERT_CHUNK_SIZE):
                        stmt = self._insert(table).values(rows[i:i + UPSERT_CHUNK_SIZE])
                        stmt = stmt.on_conflict_do_update(
                            index_elements=[table.c.url],
                            set_={name: stmt.excluded[name] for name in MUTABLE_COLUMNS},
                        )
                        await conn.execute(stmt)
            except SQLAlchemyError as e:
                logger.error(f"Failed to save {len(rows)} records to {table.name}: {e}")
                raise PersistenceError(
                    "NewsStore",
                    f"Failed to save batch to {table.name}",
                    attempted=attempted,
                    details={"channel": code.value, "saved": saved, "error": str(e)},
                ) from e
            saved += len(rows)
            logger.debug(f"Upserted {len(rows)} records into {table.name}")

        return saved

    # ============ Read Path ============

    async def list_news(
        self,
        channel: str = "",
        sort: str = NewsSort.LATEST.value,
        limit: int = DEFAULT_LIST_LIMIT,
        date: str = "",
    ) -> list[NewsRecord]:
        """
        List records for a channel (or all channels when empty).

        Raises ValueError for an unknown channel or a malformed date.
        """
        channel = (channel or "").strip().lower()
        sort_mode = parse_sort(sort)
        limit = clamp_limit(limit, MAX_LIST_LIMIT, DEFAULT_LIST_LIMIT)
        date = (date or "").strip()
        if date:
            parse_civil_date(date)

        code = None
        if channel:
            code = self._resolve(channel)
            if code is None:
                raise ValueError(f"Unknown channel: {channel}")

        key = news_list_key(channel, sort_mode.value, limit, date)
        cached = await self._cache_get(key)
        if cached is not None:
            try:
                return [NewsRecord.model_validate(item) for item in cached]
            except (ValidationError, TypeError) as e:
                logger.debug(f"Ignoring malformed cache entry {key}: {e}")

        if code is None:
            records = await self._list_all(sort_mode, limit, date)
        elif code in self.composites:
            records = await self._list_composite(self.composites[code], limit, date)
        else:
            records = await self._list_shard(code, sort_mode, limit, date)

        if records:
            await self._cache_set(key, [r.model_dump(mode="json") for r in records])

        return records

    async def _list_shard(
        self,
        code: ChannelCode,
        sort: NewsSort,
        limit: int,
        date: str = "",
    ) -> list[NewsRecord]:
        table = self.shards[code]
        stmt = select(table)
        if date:
            stmt = stmt.where(self._day_clause(table, date))
        stmt = stmt.order_by(*self._order_by(table, sort)).limit(limit)
        return await self._fetch_records(stmt)

    async def _list_all(self, sort: NewsSort, limit: int, date: str = "") -> list[NewsRecord]:
        """
        Merge across every shard.

        Each shard contributes its own top `limit` rows, so the merged
        top `limit` is exact whatever the per-channel volumes are.
        """
        batches = await asyncio.gather(
            *(self._list_shard(code, sort, limit, date) for code in self.shards)
        )
        merged = [record for batch in batches for record in batch]
        merged.sort(key=sort_key(sort), reverse=True)
        return merged[:limit]

    async def _list_composite(
        self,
        composite: CompositeView,
        limit: int,
        date: str = "",
    ) -> list[NewsRecord]:
        """Concatenate the composite's parts, each oldest-first and capped."""
        since = None if date else civil_start_of_day()
        records: list[NewsRecord] = []

        for part in composite.parts:
            table = self.shards[part]
            stmt = select(table)
            if date:
                stmt = stmt.where(self._day_clause(table, date))
            else:
                stmt = stmt.where(table.c.published_at >= since)
            stmt = stmt.order_by(table.c.published_at.asc(), table.c.id.asc()).limit(composite.part_limit)
            records.extend(await self._fetch_records(stmt))

        return records[:limit]

    async def list_published_dates(self, channel: str = "", limit: int = DEFAULT_DATES_LIMIT) -> list[str]:
        """
        Distinct civil days that have at least one record, newest first.
        Raises ValueError for an unknown channel.
        """
        channel = (channel or "").strip().lower()
        limit = clamp_limit(limit, MAX_DATES_LIMIT, DEFAULT_DATES_LIMIT)

        if channel:
            code = self._resolve(channel)
            if code is None:
                raise ValueError(f"Unknown channel: {channel}")
            codes = self.composites[code].parts if code in self.composites else (code,)
        else:
            codes = tuple(self.shards)

        key = news_dates_key(channel, limit)
        cached = await self._cache_get(key)
        if isinstance(cached, list):
            return [str(day) for day in cached]

        results = await asyncio.gather(*(self._shard_dates(code) for code in codes))
        days: set[str] = set()
        for shard_days in results:
            days.update(shard_days)

        dates = sorted(days, reverse=True)[:limit]
        if dates:
            await self._cache_set(key, dates)
        return dates

    async def _shard_dates(self, code: ChannelCode) -> set[str]:
        table = self.shards[code]
        stored = select(table.c.published_date).distinct().where(
            table.c.published_date.is_not(None),
            table.c.published_date != "",
        )
        legacy = (
            select(table.c.published_at)
            .where(or_(table.c.published_date.is_(None), table.c.published_date == ""))
            .order_by(table.c.published_at.desc())
            .limit(LEGACY_SCAN_LIMIT)
        )

        async with self.engine.connect() as conn:
            days = {row[0] for row in await conn.execute(stored)}
            for row in await conn.execute(legacy):
                if row[0] is not None:
                    days.add(civil_date_str(row[0]))
        return days

    async def has_data_for_date(self, channel: str, date: str) -> bool:
        """Whether a channel's own shard has any record on a civil day. Never cached."""
        code = self._resolve(channel)
        if code is None:
            return False
        table = self.shards[code]
        stmt = select(table.c.id).where(self._day_clause(table, date)).limit(1)
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return result.first() is not None

    # ============ Channel Registry ============

    async def ensure_channels(self) -> None:
        """Register every configured channel; existing rows are left as is."""
        now = utcnow()
        rows = [
            {
                "code": c.code.value,
                "name": c.display_name,
                "base_url": c.base_url,
                "status": "active",
                "created_at": now,
                "updated_at": now,
            }
            for c in self.channels
        ]
        if not rows:
            return
        stmt = self._insert(Channel.__table__).values(rows).on_conflict_do_nothing(index_elements=["code"])
        async with self.engine.begin() as conn:
            await conn.execute(stmt)
        logger.info(f"Channels ensured: {', '.join(c.code.value for c in self.channels)}")

    # ============ A-share Watchlist ============

    async def list_ashare_stock_codes(self) -> list[str]:
        """Watchlist codes, oldest first."""
        stmt = select(AShareStock.code).order_by(AShareStock.created_at.asc(), AShareStock.code.asc())
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [row[0] for row in result]

    async def add_ashare_stock_code(self, code: str) -> Optional[str]:
        """Add a code (no-op if present). Returns the normalized code, or None if invalid."""
        code = normalize_stock_code(code)
        if not code:
            return None
        stmt = (
            self._insert(AShareStock.__table__)
            .values(code=code, created_at=utcnow())
            .on_conflict_do_nothing(index_elements=["code"])
        )
        async with self.engine.begin() as conn:
            await conn.execute(stmt)
        return code

    async def remove_ashare_stock_code(self, code: str) -> Optional[str]:
        """Remove a code. Returns the normalized code, or None if invalid."""
        code = normalize_stock_code(code)
        if not code:
            return None
        async with self.engine.begin() as conn:
            await conn.execute(delete(AShareStock.__table__).where(AShareStock.__table__.c.code == code))
        return code
