"""
Tests for the billing cycle calculator
"""
from datetime import date, timedelta

import pytest

from subledger.domain.billing_cycle import (
    next_billing_date, validate_billing_cycle, add_months, InvalidCycleError,
)


def test_weekly_adds_seven_days():
    assert next_billing_date(date(2026, 3, 28), "weekly") == date(2026, 4, 4)


def test_monthly_same_day_next_month():
    assert next_billing_date(date(2026, 3, 15), "monthly") == date(2026, 4, 15)


def test_monthly_clamps_to_leap_february():
    assert next_billing_date(date(2024, 1, 31), "monthly") == date(2024, 2, 29)


def test_monthly_clamps_to_february():
    assert next_billing_date(date(2023, 1, 31), "monthly") == date(2023, 2, 28)


def test_monthly_never_rolls_into_next_month():
    # 31 марта -> 30 апреля, не 1 мая
    assert next_billing_date(date(2026, 3, 31), "monthly") == date(2026, 4, 30)


def test_monthly_december_rolls_year():
    assert next_billing_date(date(2025, 12, 31), "monthly") == date(2026, 1, 31)


def test_yearly_leap_day_clamps():
    assert next_billing_date(date(2024, 2, 29), "yearly") == date(2025, 2, 28)


def test_yearly_same_month_day():
    assert next_billing_date(date(2025, 7, 4), "yearly") == date(2026, 7, 4)


@pytest.mark.parametrize("cycle", ["weekly", "monthly", "yearly"])
def test_next_date_always_after_current(cycle):
    d = date(2023, 1, 1)
    while d < date(2025, 1, 1):
        assert next_billing_date(d, cycle) > d
        d += timedelta(days=1)


def test_add_months_clamp_from_31st():
    assert add_months(date(2026, 5, 31), 1) == date(2026, 6, 30)
    assert add_months(date(2026, 8, 31), 12) == date(2027, 8, 31)


def test_validate_rejects_unknown_cycle():
    with pytest.raises(InvalidCycleError):
        validate_billing_cycle("daily")


def test_validate_accepts_known_cycle():
    assert validate_billing_cycle("monthly") == "monthly"


def test_invalid_cycle_is_value_error():
    with pytest.raises(ValueError):
        next_billing_date(date(2026, 1, 1), "fortnightly")
