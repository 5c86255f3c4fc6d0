"""
TrendingHub Services

Service layer for the ingestion pipeline:
sources -> processing -> store, driven by the scheduler.
"""

from trendinghub.services.base import (
    ServiceError,
    SourceFetchError,
    ResponseTooLargeError,
    PersistenceError,
    StoreUnavailableError,
)

__all__ = [
    "ServiceError",
    "SourceFetchError",
    "ResponseTooLargeError",
    "PersistenceError",
    "StoreUnavailableError",
]
