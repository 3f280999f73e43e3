"""Datetime helpers.

All timestamps are handled as timezone-aware UTC. Databases without timezone
support (SQLite) hand back naive values, which are UTC by construction.
"""

from datetime import UTC, date, datetime, time, timedelta


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive values and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_datetime(value: date | datetime, end_of_day: bool = False) -> datetime:
    """Turn a date or datetime into an aware UTC datetime.

    A plain date becomes midnight of that day, or the last representable
    instant of the day when ``end_of_day`` is set (inclusive upper bounds).
    """
    if isinstance(value, datetime):
        return as_utc(value)
    moment = time.max if end_of_day else time.min
    return datetime.combine(value, moment, tzinfo=UTC)


def months_before(value: datetime, months: int) -> datetime:
    """Same day and time ``months`` calendar months earlier.

    Days that do not exist in the target month roll over into the next one,
    so 31 March minus one month is 3 March (2 March in leap years).
    """
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    first = value.replace(year=year, month=month + 1, day=1)
    return first + timedelta(days=value.day - 1)


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from ``start`` to ``end``."""
    return (as_utc(end) - as_utc(start)).total_seconds() / 86400
