"""
Market Status Endpoints
"""

from fastapi import APIRouter

from trendinghub.api.v1.deps import ok
from trendinghub.core.config import settings
from trendinghub.core.market_hours import get_market_status, parse_sessions

router = APIRouter()


@router.get("/status")
async def market_status():
    """A-share session status in civil time (Asia/Shanghai)."""
    return ok(get_market_status(sessions=parse_sessions(settings.ashare_sessions)))
