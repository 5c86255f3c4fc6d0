"""
A-Share Watchlist Endpoints
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from trendinghub.api.v1.deps import get_store, ok

logger = logging.getLogger(__name__)

router = APIRouter()


class StockCodeRequest(BaseModel):
    code: str


@router.get("/stocks")
async def list_stocks(store=Depends(get_store)):
    """Watchlist codes in the order they were added."""
    try:
        codes = await store.list_ashare_stock_codes()
    except Exception as e:
        logger.error(f"Error listing watchlist: {e}")
        raise HTTPException(status_code=500, detail="Failed to list stocks")
    return ok(codes)


@router.post("/stocks")
async def add_stock(body: StockCodeRequest, store=Depends(get_store)):
    """Add a 6-digit code (shorter codes are zero padded)."""
    try:
        code = await store.add_ashare_stock_code(body.code)
    except Exception as e:
        logger.error(f"Error adding stock {body.code!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to add stock")

    if code is None:
        raise HTTPException(status_code=400, detail="Invalid stock code, expected up to 6 digits")
    return ok({"code": code}, message="stock added")


@router.delete("/stocks/{code}")
async def remove_stock(code: str, store=Depends(get_store)):
    """Remove a code from the watchlist."""
    try:
        normalized = await store.remove_ashare_stock_code(code)
    except Exception as e:
        logger.error(f"Error removing stock {code!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove stock")

    if normalized is None:
        raise HTTPException(status_code=400, detail="Invalid stock code, expected up to 6 digits")
    return ok({"code": normalized}, message="stock removed")
