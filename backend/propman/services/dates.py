"""Calendar-date normalization for booking ranges.

Bookings are compared as UTC calendar dates: time-of-day is dropped after
converting aware datetimes to UTC, and naive datetimes are taken as UTC.
"""

from datetime import date, datetime, timezone

from propman.services.errors import InvalidDateError


def to_utc_date(value: date | datetime | str, field: str = "date") -> date:
    """Normalize a date, datetime or ISO-8601 string to a UTC calendar date.

    Raises:
        InvalidDateError: If ``value`` cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        return _datetime_to_utc_date(value)
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return _datetime_to_utc_date(datetime.fromisoformat(text))
        except ValueError:
            pass
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
    raise InvalidDateError(f"Invalid {field} format: {value!r}")


def utc_today() -> date:
    """Today's calendar date in UTC."""
    return datetime.now(timezone.utc).date()


def _datetime_to_utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()
