"""Date manipulation utilities"""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Naive UTC timestamp, matching how the ledger stores datetimes"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_date(value: date | datetime) -> date:
    """Drop the time-of-day part (a datetime is also a date instance)"""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole calendar days from start to end (negative when end is earlier)"""
    return (as_date(end) - as_date(start)).days


def sort_stamp(value: date | datetime) -> datetime:
    """Comparable naive UTC datetime for mixed date/aware/naive inputs"""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def add_days(from_date: date, days: int) -> date:
    return from_date + timedelta(days=days)
