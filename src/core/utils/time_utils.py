"""UTC helpers.

Timestamps are persisted as naive datetimes in UTC. Convert at the edges with
these helpers so that a stored value's calendar date is always its UTC day.
"""

from datetime import UTC, date, datetime, time, timedelta


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC. Naive input is assumed to already be UTC.

    Raises:
        ValueError: If the UTC equivalent falls outside the datetime range
    """
    if value.tzinfo is None:
        return value
    try:
        return value.astimezone(UTC).replace(tzinfo=None)
    except OverflowError:
        raise ValueError(f"{value.isoformat()} is out of range once converted to UTC") from None


def utc_day(value: datetime) -> date:
    return to_utc_naive(value).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) bounds of a UTC calendar day.

    Raises:
        ValueError: For the last representable day, whose end bound does not exist
    """
    start = datetime.combine(day, time.min)
    try:
        return start, start + timedelta(days=1)
    except OverflowError:
        raise ValueError(f"{day.isoformat()} is the last supported day and has no end bound") from None


def isoformat_utc(value: datetime | None) -> str | None:
    """Render a stored naive UTC datetime with an explicit offset."""
    if value is None:
        return None
    return value.replace(tzinfo=UTC).isoformat()
