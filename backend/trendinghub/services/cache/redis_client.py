"""
Redis cache client for list query results.

Read-through cache in front of the store. A failing or unreachable cache
only costs latency: every error is logged and treated as a miss.
"""

import json
import logging
import time
from typing import Optional, Dict, Any, Tuple

import redis.asyncio as redis

from trendinghub.core.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None

# Upper bound on keys held by the in-memory fallback
MEMORY_CACHE_MAX_ENTRIES = 1024


async def init_redis(url: Optional[str] = None) -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    url = url or settings.redis_url
    try:
        _redis_pool = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await _redis_pool.ping()
        logger.info(f"Redis connected: {url}")
        return _redis_pool
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.close()
        _redis_pool = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis connection pool."""
    return _redis_pool


def news_list_key(channel: str, sort: str, limit: int, date: str = "") -> str:
    return f"news:list:{channel}:{sort}:{limit}:{date}"


def news_dates_key(channel: str, limit: int) -> str:
    return f"news:dates:{channel}:{limit}"


class NewsCache:
    """
    JSON cache for list results.

    Keys:
    - news:list:{channel}:{sort}:{limit}:{date} → JSON list of records
    - news:dates:{channel}:{limit} → JSON list of YYYY-MM-DD strings
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, use_memory_fallback: bool = True):
        self._redis = redis_client
        self._use_memory_fallback = use_memory_fallback
        # key -> (expires_at monotonic, value)
        self._memory_cache: Dict[str, Tuple[float, str]] = {}

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    def _memory_get(self, key: str) -> Optional[str]:
        """Fallback to memory cache."""
        entry = self._memory_cache.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.monotonic():
            self._memory_cache.pop(key, None)
            return None
        return value

    def _memory_set(self, key: str, value: str, ex: int):
        """Fallback to memory cache. Expired entries are swept on every write."""
        now = time.monotonic()
        expired = [k for k, (expires_at, _) in self._memory_cache.items() if expires_at <= now]
        for k in expired:
            del self._memory_cache[k]

        # Still full: drop the entries closest to expiry
        overflow = len(self._memory_cache) - MEMORY_CACHE_MAX_ENTRIES + 1
        if overflow > 0 and key not in self._memory_cache:
            oldest = sorted(self._memory_cache, key=lambda k: self._memory_cache[k][0])[:overflow]
            for k in oldest:
                del self._memory_cache[k]

        self._memory_cache[key] = (now + ex, value)

    async def get_json(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss or error."""
        value = None

        if self.redis:
            try:
                value = await self.redis.get(key)
            except Exception as e:
                logger.debug(f"Redis get failed for {key}: {e}")
                value = None
        elif self._use_memory_fallback:
            value = self._memory_get(key)

        if not value:
            return None

        try:
            return json.loads(value)
        except ValueError as e:
            logger.debug(f"Discarding undecodable cache entry {key}: {e}")
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a value with a TTL. Returns False when nothing was written."""
        ttl = ttl or settings.cache_ttl_seconds
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.debug(f"Cache value for {key} is not serializable: {e}")
            return False

        if self.redis:
            try:
                await self.redis.set(key, payload, ex=ttl)
                return True
            except Exception as e:
                logger.debug(f"Redis set failed for {key}: {e}")
                return False

        if self._use_memory_fallback:
            self._memory_set(key, payload, ttl)
            return True
        return False


# Singleton instance
_news_cache: Optional[NewsCache] = None


def get_news_cache() -> NewsCache:
    """Get the news cache singleton."""
    global _news_cache
    if _news_cache is None:
        _news_cache = NewsCache()
    return _news_cache
