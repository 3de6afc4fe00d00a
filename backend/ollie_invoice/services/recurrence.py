"""
Recurring schedule date arithmetic.
"""

import calendar
from datetime import date, datetime
from typing import Optional, TypeVar, Union

from dateutil.relativedelta import relativedelta

from ollie_invoice.models.invoice import RecurringFrequency

DateLike = TypeVar("DateLike", date, datetime)


def _clamp_day(value: DateLike, day: int) -> DateLike:
    days_in_month = calendar.monthrange(value.year, value.month)[1]
    return value.replace(day=min(day, days_in_month))


def next_recurring_date(
    frequency: Union[RecurringFrequency, str],
    every: int = 1,
    day: Optional[int] = None,
    month: Optional[int] = None,
    from_date: DateLike = None,
) -> DateLike:
    """
    Compute the next occurrence after ``from_date``.

    Monthly and yearly schedules pin the result to ``day`` (and ``month`` for
    yearly), clamped to the length of the resulting month, so day 31 lands on
    the last day of shorter months. The time of day of ``from_date`` is kept.
    """
    if from_date is None:
        raise ValueError("from_date is required")
    if every is None:
        every = 1
    if every < 1:
        raise ValueError("every must be at least 1")

    frequency = RecurringFrequency(frequency)

    if frequency == RecurringFrequency.DAILY:
        return from_date + relativedelta(days=every)
    if frequency == RecurringFrequency.WEEKLY:
        return from_date + relativedelta(weeks=every)
    if frequency == RecurringFrequency.MONTHLY:
        result = from_date + relativedelta(months=every)
        if day:
            result = _clamp_day(result, day)
        return result

    result = from_date + relativedelta(years=every)
    if month:
        result = _clamp_day(result.replace(day=1, month=month), result.day)
    if day:
        result = _clamp_day(result, day)
    return result


def advance_past(
    frequency: Union[RecurringFrequency, str],
    every: int,
    day: Optional[int],
    month: Optional[int],
    from_date: DateLike,
    after: DateLike,
) -> DateLike:
    """Step the schedule forward from ``from_date`` until it is strictly after ``after``."""
    result = next_recurring_date(frequency, every, day, month, from_date)
    while result <= after:
        result = next_recurring_date(frequency, every, day, month, result)
    return result
