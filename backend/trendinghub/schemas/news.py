"""
CONTRACT: Ingestion Pipeline

RawItem          -> produced by a Source, discarded after normalization
NormalizedRecord -> produced by the Normalizer, persisted by the Store
NewsRecord       -> returned by the Store read path (and cached)
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class ChannelCode(str, Enum):
    GITHUB = "github"
    BAIDU = "baidu"
    GOLD = "gold"
    ASHARE = "ashare"
    X = "x"
    HACKERNEWS = "hackernews"


class NewsSort(str, Enum):
    LATEST = "latest"  # published_at DESC
    HOT = "hot"  # hot_score DESC, then published_at DESC


# =============================================================================
# INPUT: RawItem
# =============================================================================


class RawItem(BaseModel):
    """
    Source-specific payload prior to normalization.
    Sent by: Source.fetch()
    Received by: NewsNormalizer
    """

    title: str
    url: str = Field(..., description="Target link; identity of the item within its channel")
    source: str = Field(..., description="Channel code, e.g. 'baidu'")
    summary: Optional[str] = None
    description: Optional[str] = None
    published_at: datetime
    hot_score: float = 0.0
    raw_data: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# OUTPUT: NormalizedRecord / NewsRecord
# =============================================================================


class NormalizedRecord(BaseModel):
    """Canonical, storable unit."""

    id: str = Field(..., description="sha1 fingerprint of url")
    title: str
    url: str
    source: str
    description: str = ""
    published_at: datetime
    published_date: str = Field(..., description="YYYY-MM-DD in Asia/Shanghai")
    hot_score: float = 0.0
    extra_data: dict[str, Any] = Field(default_factory=dict)


class NewsRecord(NormalizedRecord):
    """A persisted record as returned by list queries."""

    published_date: Optional[str] = None  # Legacy rows may lack it
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "6f1ed002ab5595859014ebf0951522d9a1b0e2e0",
                "title": "openai/codex",
                "url": "https://github.com/openai/codex",
                "source": "github",
                "description": "Lightweight coding agent that runs in your terminal",
                "published_at": "2026-02-04T02:30:00+00:00",
                "published_date": "2026-02-04",
                "hot_score": 1520,
                "extra_data": {"stars": 1520},
            }
        }
