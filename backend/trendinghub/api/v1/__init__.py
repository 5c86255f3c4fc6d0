"""
API v1 Router

Read API over the store plus collection controls.
"""

from fastapi import APIRouter

from trendinghub.api.v1.endpoints import news, collect, ashare, market

router = APIRouter()

# Include all endpoint routers
router.include_router(news.router, prefix="/news", tags=["News"])
router.include_router(collect.router, prefix="/collect", tags=["Collection"])
router.include_router(ashare.router, prefix="/ashare", tags=["A-Share Watchlist"])
router.include_router(market.router, prefix="/market", tags=["Market Status"])
