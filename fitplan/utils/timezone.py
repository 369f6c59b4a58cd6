"""Timezone and calendar-day helpers.

All datetimes are stored as naive UTC and handled as aware UTC in memory.
The engine never negotiates user timezones: callers pass calendar dates.
"""

import math
from datetime import date, datetime, time, timedelta, timezone

ONE_DAY = timedelta(days=1)


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC.

    Args:
        dt: Datetime (timezone-aware or naive)

    Returns:
        Datetime in UTC timezone
    """
    if dt.tzinfo is None:
        # Assume UTC if naive
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_storage(dt: datetime) -> datetime:
    """Convert a datetime to the naive UTC form written to the database."""
    return to_utc(dt).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Get storage-form start and end of a calendar day.

    Args:
        day: Calendar date

    Returns:
        (start, end) naive UTC datetimes covering the whole day, inclusive
    """
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time.max)
    return start, end


def start_of_day(value: datetime | date) -> date:
    if isinstance(value, datetime):
        return to_utc(value).date()
    return value


def calendar_days_between(start: datetime | date, end: datetime | date) -> int:
    """Whole calendar days from start's day to end's day (negative when end is earlier)."""
    delta = start_of_day(end) - start_of_day(start)
    return math.ceil(delta / ONE_DAY)
