"""Time helpers for consistent UTC handling."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return a naive UTC datetime for DB storage and comparisons."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """Return `[start, end)` of the calendar month containing `moment`."""
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end
