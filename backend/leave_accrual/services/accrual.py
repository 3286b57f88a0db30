"""Accrual calculator: leave earned over elapsed qualifying months of a fiscal cycle."""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime
from fractions import Fraction
from typing import TYPE_CHECKING

from leave_accrual.models.enums import LeaveType
from leave_accrual.services.cycle import as_local_datetime
from leave_accrual.services.rounding import round_one_decimal

if TYPE_CHECKING:
    from leave_accrual.schemas.leave import EmployeeRecord
    from leave_accrual.services.cycle import CycleRange

MONTHS_PER_CYCLE = 12

# Days granted per full fiscal cycle.
YEARLY_ALLOCATIONS: dict[LeaveType, int] = {
    LeaveType.ANNUAL: 10,
    LeaveType.CASUAL: 5,
    LeaveType.MEDICAL: 14,
}


def monthly_accrual_rate(leave_type: LeaveType) -> Fraction:
    """Days earned per qualifying month, kept exact so twelve months sum to the allocation."""
    return Fraction(YEARLY_ALLOCATIONS[leave_type], MONTHS_PER_CYCLE)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmploymentWindow:
    """Employment period clipped to the fiscal cycle (inclusive dates)."""

    start: date
    end: date


@dataclass
class AccrualResult:
    """Accrued days per leave type and the months that earned them."""

    totals: dict[LeaveType, float]
    months: list[date] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Employment window
# ---------------------------------------------------------------------------


def resolve_employment_start(employee: EmployeeRecord, cycle_start: date) -> date:
    """First day of employment: internship, then full-time start, then ``start_date``.

    An employee with no usable start date is treated as employed from
    ``cycle_start`` and therefore earns the whole cycle. The precedence
    between the raw fields is settled in ``EmployeeRecord``.
    """
    return employee.employment_start or cycle_start


def resolve_employment_end(employee: EmployeeRecord, cycle_end: date) -> date:
    """Last day of employment, or ``cycle_end`` while still employed."""
    return employee.employment_end or cycle_end


def get_effective_employment_window(employee: EmployeeRecord, cycle_range: CycleRange) -> EmploymentWindow | None:
    """Intersect the employment period with the cycle. None when they do not overlap."""
    cycle_start = cycle_range.start.date()
    cycle_end = cycle_range.end.date()
    effective_start = max(resolve_employment_start(employee, cycle_start), cycle_start)
    effective_end = min(resolve_employment_end(employee, cycle_end), cycle_end)

    if effective_start > effective_end:
        return None
    return EmploymentWindow(start=effective_start, end=effective_end)


# ---------------------------------------------------------------------------
# Qualifying months
# ---------------------------------------------------------------------------


def _month_end(month_start: date) -> date:
    _, days_in_month = monthrange(month_start.year, month_start.month)
    return month_start.replace(day=days_in_month)


def _next_month(month_start: date) -> date:
    if month_start.month == 12:
        return date(month_start.year + 1, 1, 1)
    return date(month_start.year, month_start.month + 1, 1)


def list_accrual_months(window: EmploymentWindow | None, as_of: date | datetime | None = None) -> list[date]:
    """Return the first day of every month that has earned accrual by ``as_of``.

    Months are walked from the window start through ``min(window.end, as_of)``.
    A month qualifies once the accrual boundary (month end, capped at the
    cutoff) has reached the first active day of the window in that month.
    """
    if window is None:
        return []

    cutoff = as_local_datetime(as_of).date()
    accrual_end = min(window.end, cutoff)

    months: list[date] = []
    cursor = window.start.replace(day=1)
    while cursor <= accrual_end:
        active_start = max(cursor, window.start)
        boundary = min(_month_end(cursor), accrual_end)
        if boundary >= active_start:
            months.append(cursor)
        cursor = _next_month(cursor)

    return months


# ---------------------------------------------------------------------------
# Accrued totals
# ---------------------------------------------------------------------------


def calculate_accrued_leave(
    employee: EmployeeRecord,
    cycle_range: CycleRange,
    as_of: date | datetime | None = None,
) -> AccrualResult:
    """Compute accrued days per leave type for ``employee`` within ``cycle_range``.

    Each qualifying month earns one monthly accrual per type, and totals are
    rounded half-up to one decimal. Monthly rates are exact, so a twelve-month
    cycle earns exactly the yearly allocation.
    """
    window = get_effective_employment_window(employee, cycle_range)
    if window is None:
        return AccrualResult(totals={leave_type: 0.0 for leave_type in LeaveType})

    months = list_accrual_months(window, as_of)

    totals = {
        leave_type: round_one_decimal(monthly_accrual_rate(leave_type) * len(months)) for leave_type in LeaveType
    }

    return AccrualResult(totals=totals, months=months)
