"""
TrendingHub Backend - FastAPI Application

Main entry point: ingestion scheduler plus the read API over the store.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trendinghub.core.config import settings
from trendinghub.api.v1 import router as api_v1_router

logger = logging.getLogger(__name__)


async def seed_watchlist(store, raw_codes: str) -> None:
    """Add codes from ASHARE_STOCK_CODES; existing entries are kept."""
    from trendinghub.services.sources.ashare_index import parse_stock_codes

    for code in parse_stock_codes(raw_codes):
        if await store.add_ashare_stock_code(code) is None:
            logger.warning(f"Ignoring invalid A-share code in ASHARE_STOCK_CODES: {code!r}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    # Initialize Redis cache (optional)
    from trendinghub.services.cache.redis_client import init_redis, close_redis, NewsCache
    redis_client = await init_redis()
    if redis_client:
        logger.info("Redis cache connected")
    else:
        logger.info("Redis unavailable - using in-memory cache")

    # Connect the store; failure here is fatal
    from trendinghub.services.store.service import NewsStore
    store = await NewsStore.connect(settings, cache=NewsCache(redis_client))
    await store.ensure_channels()
    await seed_watchlist(store, settings.ashare_stock_codes)
    app.state.store = store

    # Scheduler
    from trendinghub.services.processing.normalizer import NewsNormalizer
    from trendinghub.services.scheduler.scheduler import IngestionScheduler
    from trendinghub.services.sources.registry import build_source_jobs
    scheduler = IngestionScheduler(
        build_source_jobs(store, settings),
        NewsNormalizer(settings.description_max_chars),
        store,
    )
    app.state.scheduler = scheduler
    if settings.enable_scheduler:
        scheduler.start(startup_delay=settings.startup_delay_seconds)
        logger.info(f"Scheduler started (warm-up run in {settings.startup_delay_seconds:g}s)")
    else:
        logger.info("Scheduler disabled (enable_scheduler=false)")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await scheduler.stop()
    await store.close()
    await close_redis()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    TrendingHub API

    ## Architecture
    - **Sources**: Baidu hot search, gold price, A-share quotes, Hacker News, GitHub Trending, X trends
    - **Normalizer**: Fingerprint ids, in-batch dedup, bounded descriptions
    - **Store**: One table per channel, upsert by url, cached list queries
    - **Scheduler**: One cron schedule per source, failure isolated
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "TrendingHub Backend API",
        "docs": "/docs",
        "health": "/health",
    }
