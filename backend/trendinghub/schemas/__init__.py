"""
TrendingHub Schemas

Pydantic models for the data contracts between pipeline stages.
"""

from trendinghub.schemas.news import (
    ChannelCode,
    NewsSort,
    RawItem,
    NormalizedRecord,
    NewsRecord,
)

__all__ = [
    "ChannelCode",
    "NewsSort",
    "RawItem",
    "NormalizedRecord",
    "NewsRecord",
]
