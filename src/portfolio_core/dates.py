"""Calendar helpers: every valuation date is a plain UTC calendar date."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_date(value: date | datetime) -> date:
    """Collapse a datetime to its UTC calendar date; dates pass through."""
    if isinstance(value, datetime):
        return as_utc(value).date()
    return value


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def date_range_inclusive(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from *start* to *end*, both included."""
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def start_of_year(value: date) -> date:
    return date(value.year, 1, 1)
