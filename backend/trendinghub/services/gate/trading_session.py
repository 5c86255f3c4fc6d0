"""
Trading Session Gate

Fetch-admission policy for market-style sources whose values only change
while the market is open.

- Open session on a trading day → fetch
- Closed, no way to check stored data → skip
- Closed on a trading day with nothing stored for today → fetch once (backfill)
- Closed and today already has data → skip until the next trading day
- Weekends → skip
"""

import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence

from trendinghub.core.clock import get_civil_now, to_civil
from trendinghub.core.market_hours import (
    DEFAULT_SESSIONS,
    MarketSession,
    TradingSession,
    get_market_session,
    is_trading_day,
)

logger = logging.getLogger(__name__)

# Called with the civil "now"; answers whether that civil day already has data
HasTodayData = Callable[[datetime], Awaitable[bool]]


@dataclass
class GateDecision:
    """Whether to fetch, plus the facts behind the decision."""

    allowed: bool
    market_open: bool
    trading_day: bool
    has_today_data: Optional[bool]
    civil_time: str
    session: str
    reason: str
    sessions: list[str] = field(default_factory=list)  # Configured windows, "HH:MM-HH:MM"

    def to_dict(self) -> dict:
        return asdict(self)


class TradingSessionGate:
    """
    Decide whether a fetch should be attempted right now.

    Time is always evaluated in the civil timezone, never the host's
    local time.
    """

    def __init__(
        self,
        sessions: Sequence[TradingSession] = DEFAULT_SESSIONS,
        has_today_data: Optional[HasTodayData] = None,
    ):
        self.sessions = tuple(sessions) or DEFAULT_SESSIONS
        self.has_today_data = has_today_data

    def decide(self, now: datetime, has_today_data: Optional[bool] = None) -> GateDecision:
        """
        Pure decision for a moment in time.

        has_today_data is None when the caller cannot check stored data.
        """
        now = to_civil(now)
        session = get_market_session(now, self.sessions)
        trading_day = is_trading_day(now.date())
        market_open = session == MarketSession.OPEN

        if market_open:
            allowed, reason = True, "market open"
        elif not trading_day:
            allowed, reason = False, "not a trading day"
        elif has_today_data is None:
            allowed, reason = False, "market closed"
        elif not has_today_data:
            allowed, reason = True, "market closed, backfilling today's snapshot"
        else:
            allowed, reason = False, "market closed, today already has data"

        return GateDecision(
            allowed=allowed,
            market_open=market_open,
            trading_day=trading_day,
            has_today_data=has_today_data,
            civil_time=now.strftime("%Y-%m-%d %H:%M:%S"),
            session=session.value,
            reason=reason,
            sessions=[f"{s.start}-{s.end}" for s in self.sessions],
        )

    async def evaluate(self, now: Optional[datetime] = None) -> GateDecision:
        """
        Decide for now (or a given moment), consulting the store if the
        market is closed on a trading day.
        """
        now = get_civil_now() if now is None else to_civil(now)

        has_data = None
        needs_check = (
            self.has_today_data is not None
            and is_trading_day(now.date())
            and get_market_session(now, self.sessions) != MarketSession.OPEN
        )
        if needs_check:
            has_data = bool(await self.has_today_data(now))

        decision = self.decide(now, has_data)
        logger.debug(f"Gate decision at {decision.civil_time}: allowed={decision.allowed} ({decision.reason})")
        return decision
