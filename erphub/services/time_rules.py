"""
Timezone helpers. Timestamps are stored in UTC; "today" and clock-in hours are
evaluated in the configured local timezone (TZ_DEFAULT).
"""
from datetime import datetime, date, time, timedelta
from typing import Optional, Tuple
import pytz
from ..config import settings


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalise aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(pytz.UTC)


def local_tz(timezone_str: Optional[str] = None):
    return pytz.timezone(timezone_str or settings.tz_default)


def now_utc() -> datetime:
    return datetime.now(pytz.UTC)


def to_local(dt: datetime, timezone_str: Optional[str] = None) -> datetime:
    return ensure_utc(dt).astimezone(local_tz(timezone_str))


def local_today(timezone_str: Optional[str] = None) -> date:
    return now_utc().astimezone(local_tz(timezone_str)).date()


def local_day_bounds(day: date, timezone_str: Optional[str] = None) -> Tuple[datetime, datetime]:
    """
    UTC [start, end) covering one local calendar day.

    Args:
        day: Local calendar date
        timezone_str: Timezone name (default from settings)

    Returns:
        (start_utc, end_utc)
    """
    tz = local_tz(timezone_str)
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)


def utc_day_bounds(start_day: Optional[date], end_day: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """UTC [start, end) for an inclusive date range; either side may be open."""
    start = pytz.UTC.localize(datetime.combine(start_day, time.min)) if start_day else None
    end = pytz.UTC.localize(datetime.combine(end_day + timedelta(days=1), time.min)) if end_day else None
    return start, end
