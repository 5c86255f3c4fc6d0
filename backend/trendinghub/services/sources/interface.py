"""
Source Interface

Defines the contract every ingestion source implements.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from trendinghub.schemas.news import RawItem
from trendinghub.services.gate.trading_session import TradingSessionGate


class Source(ABC):
    """
    Source Contract.

    OUTPUT: list[RawItem]
        - Empty list is a valid result (nothing new, or nothing parsed)

    RAISES: SourceFetchError
        - Network errors, bad status, oversized or malformed responses

    Every outbound call made by fetch() carries a bounded timeout.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier used for scheduling and logging."""
        pass

    @abstractmethod
    async def fetch(self) -> list[RawItem]:
        """Fetch one batch of raw items."""
        pass

    async def close(self) -> None:
        """Release any held resources (HTTP sessions)."""
        pass


@dataclass
class SourceJob:
    """A source plus its schedule and optional admission gate."""

    source: Source
    cron_spec: str
    gate: Optional[TradingSessionGate] = None

    @property
    def name(self) -> str:
        return self.source.name
