"""
Collect API Endpoints

Manual trigger for a run of every source, plus scheduler status.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException

from trendinghub.api.v1.deps import get_scheduler, ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def collect_now(scheduler=Depends(get_scheduler)):
    """Run every source once and wait for the results."""
    try:
        results = await scheduler.run_all_once()
    except Exception as e:
        logger.error(f"Manual collect failed: {e}")
        raise HTTPException(status_code=500, detail="Collect failed")

    return ok([r.to_dict() for r in results], message="collect finished")


@router.get("/status")
async def collect_status(scheduler=Depends(get_scheduler)):
    """Per-source state and last run outcome."""
    return ok({
        "scheduler_running": scheduler.running,
        "states": scheduler.get_states(),
        "last_results": scheduler.get_last_results(),
    })
