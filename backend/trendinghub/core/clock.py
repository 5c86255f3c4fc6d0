"""
Civil Time Utility

All calendar-day math happens in one fixed civil timezone (Asia/Shanghai),
never in the caller's local time. The write path (stamping published_date)
and the read path (legacy rows without published_date) both go through
civil_date_str() so they always agree.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
import pytz

CIVIL_TIMEZONE = "Asia/Shanghai"
CIVIL_TZ = pytz.timezone(CIVIL_TIMEZONE)

DATE_FORMAT = "%Y-%m-%d"


def get_civil_now() -> datetime:
    """Get current time in the civil timezone."""
    return datetime.now(CIVIL_TZ)


def ensure_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_civil(dt: datetime) -> datetime:
    """Convert any datetime to the civil timezone."""
    return ensure_utc(dt).astimezone(CIVIL_TZ)


def civil_date_str(dt: datetime) -> str:
    """Derive the YYYY-MM-DD calendar day of a timestamp."""
    return to_civil(dt).strftime(DATE_FORMAT)


def parse_civil_date(day: str) -> date:
    """Parse YYYY-MM-DD. Raises ValueError on bad input."""
    return datetime.strptime(day, DATE_FORMAT).date()


def civil_day_bounds(day: str) -> tuple[datetime, datetime]:
    """
    UTC [start, end) of a civil calendar day.

    Used to match legacy rows by published_at; equivalent to
    civil_date_str(published_at) == day.
    """
    d = parse_civil_date(day)
    start = CIVIL_TZ.localize(datetime(d.year, d.month, d.day))
    next_day = d + timedelta(days=1)
    end = CIVIL_TZ.localize(datetime(next_day.year, next_day.month, next_day.day))
    return ensure_utc(start), ensure_utc(end)


def civil_start_of_day(now: Optional[datetime] = None) -> datetime:
    """UTC instant of civil midnight for the day containing now."""
    if now is None:
        now = get_civil_now()
    start, _ = civil_day_bounds(civil_date_str(now))
    return start
