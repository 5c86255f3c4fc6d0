"""
News API Endpoints

Latest / hottest records per channel, optionally for one calendar day.
"""

import logging
from fastapi import APIRouter, Depends, Query, HTTPException

from trendinghub.api.v1.deps import get_store, ok
from trendinghub.core.clock import parse_civil_date
from trendinghub.db.channels import parse_channel
from trendinghub.schemas.news import ChannelCode

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
MAX_GOLD_LIMIT = 600  # Intraday chart points
DEFAULT_DATES_LIMIT = 31
MAX_DATES_LIMIT = 365


def _validate_channel(channel: str) -> str:
    channel = channel.strip().lower()
    if channel and parse_channel(channel) is None:
        raise HTTPException(status_code=400, detail=f"Unknown channel: {channel}")
    return channel


@router.get("")
async def list_news(
    channel: str = Query("", description="Channel code; empty for all channels"),
    sort: str = Query("latest", description="latest or hot"),
    limit: int = Query(DEFAULT_LIMIT, description="Number of records"),
    date: str = Query("", description="Calendar day, YYYY-MM-DD"),
    store=Depends(get_store),
):
    """
    List news records.

    Example: `/news?channel=github&sort=hot&limit=20&date=2026-02-04`
    """
    channel = _validate_channel(channel)

    date = date.strip()
    if date:
        try:
            parse_civil_date(date)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date, expected YYYY-MM-DD")

    max_limit = MAX_GOLD_LIMIT if channel == ChannelCode.GOLD.value else MAX_LIMIT
    if limit <= 0:
        limit = DEFAULT_LIMIT
    limit = min(limit, max_limit)

    try:
        records = await store.list_news(channel, sort, limit, date)
    except Exception as e:
        logger.error(f"Error listing news (channel={channel!r}): {e}")
        raise HTTPException(status_code=500, detail="Failed to list news")

    return ok([r.model_dump(mode="json") for r in records])


@router.get("/dates")
async def list_news_dates(
    channel: str = Query("", description="Channel code; empty for all channels"),
    limit: int = Query(DEFAULT_DATES_LIMIT, description="Number of days"),
    store=Depends(get_store),
):
    """Calendar days that have at least one record, newest first."""
    channel = _validate_channel(channel)
    if limit <= 0:
        limit = DEFAULT_DATES_LIMIT
    limit = min(limit, MAX_DATES_LIMIT)

    try:
        dates = await store.list_published_dates(channel, limit)
    except Exception as e:
        logger.error(f"Error listing news dates (channel={channel!r}): {e}")
        raise HTTPException(status_code=500, detail="Failed to list dates")

    return ok(dates)
