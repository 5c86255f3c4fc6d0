"""
Scheduler module for TrendingHub.

Cron-driven, failure-isolated ingestion runs.
"""

from trendinghub.services.scheduler.scheduler import (
    IngestionScheduler,
    RunStatus,
    SourceRunResult,
    SourceState,
)

__all__ = [
    "IngestionScheduler",
    "RunStatus",
    "SourceRunResult",
    "SourceState",
]
