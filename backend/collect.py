"""
One-shot collection: run every source once and exit.
Run with: python collect.py
"""

import asyncio
import logging
import os
import sys

# Set working directory
backend_dir = os.path.dirname(os.path.abspath(__file__))
os.chdir(backend_dir)
sys.path.insert(0, backend_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(backend_dir, ".env"))


async def collect() -> int:
    """Connect the store, run all sources once, print a summary."""
    from trendinghub.core.config import settings
    from trendinghub.services.cache.redis_client import init_redis, close_redis, NewsCache
    from trendinghub.services.processing.normalizer import NewsNormalizer
    from trendinghub.services.scheduler.scheduler import IngestionScheduler
    from trendinghub.services.sources.registry import build_source_jobs
    from trendinghub.services.store.service import NewsStore

    redis_client = await init_redis()
    store = await NewsStore.connect(settings, cache=NewsCache(redis_client))
    await store.ensure_channels()

    scheduler = IngestionScheduler(
        build_source_jobs(store, settings),
        NewsNormalizer(settings.description_max_chars),
        store,
    )

    try:
        results = await scheduler.run_all_once()
    finally:
        await scheduler.stop()
        await store.close()
        await close_redis()

    print("\n" + "=" * 60)
    print("TRENDINGHUB - COLLECT")
    print("=" * 60)
    for result in results:
        line = f"{result.source:<18} {result.status.value:<15} fetched={result.fetched:<4} saved={result.saved}"
        if result.error:
            line += f"  ({result.error})"
        print(line)

    return 0 if all(r.ok for r in results) else 1


if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(collect()))
