"""UTC-everywhere time handling for timestamps and invoice calendar dates."""

from datetime import date, datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Current calendar date in UTC. Invoice and due dates are plain dates."""
    return now_utc().date()


def epoch_millis(dt: datetime | None = None) -> int:
    """
    Milliseconds since the Unix epoch.

    Raises ValueError if datetime is naive (no timezone).
    """
    dt = dt or now_utc()
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime. Datetime must be timezone-aware."
        )
    return (dt - _EPOCH) // timedelta(milliseconds=1)
