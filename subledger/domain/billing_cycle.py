"""
Billing cycle calculator.

Uses date only (no timezone).

Cycles:
- weekly: +7 days
- monthly: same day next month, clipped to the last day of a shorter month
  (Jan 31 -> Feb 28/29, never rolls into March)
- yearly: same month/day next year, Feb 29 -> Feb 28 in non-leap years
"""
import calendar
from datetime import date, timedelta

CYCLE_WEEKLY = "weekly"
CYCLE_MONTHLY = "monthly"
CYCLE_YEARLY = "yearly"

VALID_CYCLES = frozenset({CYCLE_WEEKLY, CYCLE_MONTHLY, CYCLE_YEARLY})


class InvalidCycleError(ValueError):
    """Unknown billing cycle, rejected before any processing"""
    pass


def validate_billing_cycle(cycle: str) -> str:
    if cycle not in VALID_CYCLES:
        raise InvalidCycleError(
            f"invalid billing cycle: {cycle!r} (expected weekly, monthly or yearly)"
        )
    return cycle


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: date, n: int) -> date:
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = min(d.day, last_day_of_month(year, month))
    return date(year, month, day)


def next_billing_date(current: date, cycle: str) -> date:
    """
    Следующая дата списания после `current`.

    Всегда строго больше `current`. Cycle must already be validated
    (validate_billing_cycle), unknown values raise InvalidCycleError.
    """
    if cycle == CYCLE_WEEKLY:
        return current + timedelta(days=7)
    if cycle == CYCLE_MONTHLY:
        return add_months(current, 1)
    if cycle == CYCLE_YEARLY:
        return add_months(current, 12)
    raise InvalidCycleError(f"invalid billing cycle: {cycle!r}")
