"""
Recurring schedule date arithmetic tests.
"""

from datetime import date, datetime

import pytest

from ollie_invoice.models.invoice import RecurringFrequency
from ollie_invoice.services.recurrence import advance_past, next_recurring_date


def test_daily_and_weekly_steps():
    start = datetime(2025, 3, 10, 9, 30)
    assert next_recurring_date("daily", 3, from_date=start) == datetime(2025, 3, 13, 9, 30)
    assert next_recurring_date(RecurringFrequency.WEEKLY, 2, from_date=start) == datetime(2025, 3, 24, 9, 30)


def test_monthly_day_31_clamps_to_february_end():
    assert next_recurring_date("monthly", 1, day=31, from_date=date(2025, 1, 15)) == date(2025, 2, 28)
    assert next_recurring_date("monthly", 1, day=31, from_date=date(2024, 1, 15)) == date(2024, 2, 29)


def test_monthly_day_returns_to_31_after_short_month():
    assert next_recurring_date("monthly", 1, day=31, from_date=date(2025, 2, 28)) == date(2025, 3, 31)


def test_monthly_without_day_keeps_day_of_month():
    assert next_recurring_date("monthly", 2, from_date=date(2025, 1, 10)) == date(2025, 3, 10)
    assert next_recurring_date("monthly", 1, from_date=date(2025, 1, 31)) == date(2025, 2, 28)


def test_yearly_with_month_and_day():
    result = next_recurring_date("yearly", 1, day=29, month=2, from_date=datetime(2025, 6, 1, 8, 0))
    assert result == datetime(2026, 2, 28, 8, 0)
    assert next_recurring_date("yearly", 1, day=29, month=2, from_date=date(2027, 6, 1)) == date(2028, 2, 29)


def test_time_of_day_is_kept():
    result = next_recurring_date("monthly", 1, day=15, from_date=datetime(2025, 1, 15, 0, 1))
    assert result == datetime(2025, 2, 15, 0, 1)


def test_invalid_input_raises_value_error():
    with pytest.raises(ValueError):
        next_recurring_date("fortnightly", from_date=date(2025, 1, 1))
    with pytest.raises(ValueError):
        next_recurring_date("daily", 0, from_date=date(2025, 1, 1))


def test_advance_past_skips_missed_periods():
    result = advance_past(
        "monthly", 1, 31, None,
        from_date=datetime(2025, 1, 31, 0, 1),
        after=datetime(2025, 3, 31, 0, 1),
    )
    assert result == datetime(2025, 4, 30, 0, 1)


def test_advance_past_takes_at_least_one_step():
    result = advance_past("weekly", 1, None, None, from_date=date(2025, 1, 1), after=date(2024, 12, 1))
    assert result == date(2025, 1, 8)
