"""
Clock helpers. All persisted timestamps are naive UTC.
"""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_start(moment: datetime) -> date:
    """First day of the calendar month containing ``moment``."""
    return date(moment.year, moment.month, 1)


def next_month_start(moment: datetime) -> date:
    if moment.month == 12:
        return date(moment.year + 1, 1, 1)
    return date(moment.year, moment.month + 1, 1)
