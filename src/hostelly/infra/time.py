"""Time utilities for consistent timestamp handling.

Allocation timestamps are stored as timestamptz. Callers may pass plain
dates (front desk registers often only record the day) or naive datetimes;
both are normalized to timezone-aware UTC here.
"""

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: date | datetime) -> datetime:
    """Normalize a date or datetime to an aware UTC datetime.

    A plain date maps to midnight UTC of that day. A naive datetime is
    assumed to already be in UTC.
    """
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
