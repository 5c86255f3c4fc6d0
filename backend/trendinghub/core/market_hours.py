"""
Market Hours Utility

Handles A-share trading sessions in the civil timezone (Asia/Shanghai).
Sessions are inclusive of their boundary minutes: with the default
09:30-11:30 and 13:00-15:00 windows, 11:30 is open and 11:31 is not.
"""

from dataclasses import dataclass
from datetime import datetime, date, timedelta
from enum import Enum
from typing import Optional, Sequence

from trendinghub.core.clock import CIVIL_TZ, get_civil_now, to_civil


class MarketSession(str, Enum):
    PRE_OPEN = "PRE_OPEN"
    OPEN = "OPEN"
    BREAK = "BREAK"
    POST_CLOSE = "POST_CLOSE"
    CLOSED = "CLOSED"  # Non-trading day


@dataclass(frozen=True)
class TradingSession:
    """One open window, as HH:MM strings."""

    start: str
    end: str

    def contains(self, time_str: str) -> bool:
        return self.start <= time_str <= self.end


# Shanghai / Shenzhen continuous trading (civil time)
DEFAULT_SESSIONS = (
    TradingSession("09:30", "11:30"),
    TradingSession("13:00", "15:00"),
)


def parse_sessions(spec: str) -> tuple[TradingSession, ...]:
    """
    Parse "09:30-11:30,13:00-15:00" into sessions.
    Falls back to DEFAULT_SESSIONS when nothing valid is given.
    """
    sessions = []
    for part in spec.split(","):
        part = part.strip()
        if not part or "-" not in part:
            continue
        start, end = (p.strip() for p in part.split("-", 1))
        try:
            datetime.strptime(start, "%H:%M")
            datetime.strptime(end, "%H:%M")
        except ValueError:
            continue
        if start <= end:
            sessions.append(TradingSession(start, end))

    if not sessions:
        return DEFAULT_SESSIONS
    return tuple(sorted(sessions, key=lambda s: s.start))


def is_weekend(dt: date) -> bool:
    """Check if date is a weekend."""
    return dt.weekday() >= 5  # Saturday = 5, Sunday = 6


def is_trading_day(dt: date) -> bool:
    """Check if date is a trading day (weekdays only)."""
    return not is_weekend(dt)


def get_market_session(
    dt: Optional[datetime] = None,
    sessions: Sequence[TradingSession] = DEFAULT_SESSIONS,
) -> MarketSession:
    """Get market session for a moment, evaluated in civil time."""
    dt = get_civil_now() if dt is None else to_civil(dt)

    if not is_trading_day(dt.date()):
        return MarketSession.CLOSED

    time_str = dt.strftime("%H:%M")

    if any(s.contains(time_str) for s in sessions):
        return MarketSession.OPEN
    elif time_str < sessions[0].start:
        return MarketSession.PRE_OPEN
    elif time_str > sessions[-1].end:
        return MarketSession.POST_CLOSE
    else:
        return MarketSession.BREAK


def is_market_open(
    dt: Optional[datetime] = None,
    sessions: Sequence[TradingSession] = DEFAULT_SESSIONS,
) -> bool:
    """Check if market is open for trading."""
    return get_market_session(dt, sessions) == MarketSession.OPEN


def get_next_trading_day(dt: Optional[date] = None) -> date:
    """Get the next trading day."""
    if dt is None:
        dt = get_civil_now().date()

    next_day = dt + timedelta(days=1)
    while not is_trading_day(next_day):
        next_day += timedelta(days=1)

    return next_day


def get_market_status(
    now: Optional[datetime] = None,
    sessions: Sequence[TradingSession] = DEFAULT_SESSIONS,
) -> dict:
    """Get comprehensive market status."""
    now = get_civil_now() if now is None else to_civil(now)
    session = get_market_session(now, sessions)

    status = {
        "is_open": session == MarketSession.OPEN,
        "session": session.value,
        "is_trading_day": is_trading_day(now.date()),
        "current_time": now.strftime("%H:%M:%S"),
        "current_date": now.date().isoformat(),
        "sessions": [f"{s.start}-{s.end}" for s in sessions],
    }

    if not status["is_open"]:
        today = now.date()
        time_str = now.strftime("%H:%M")
        upcoming = [s for s in sessions if s.start > time_str] if is_trading_day(today) else []
        if upcoming:
            open_day, open_time = today, upcoming[0].start
        else:
            open_day, open_time = get_next_trading_day(today), sessions[0].start
        opens_at = CIVIL_TZ.localize(
            datetime.strptime(f"{open_day.isoformat()} {open_time}", "%Y-%m-%d %H:%M")
        )
        status["next_open"] = opens_at.isoformat()

    return status
