"""Balance composer: accrued minus taken per leave type, packaged with cycle metadata."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from leave_accrual.models.employee import Employee
from leave_accrual.models.enums import LeaveType
from leave_accrual.schemas.balance import LeaveBalances, LeaveTypeBalance
from leave_accrual.schemas.leave import EmployeeRecord, LeaveApplicationRecord
from leave_accrual.services.accrual import (
    YEARLY_ALLOCATIONS,
    AccrualResult,
    calculate_accrued_leave,
    monthly_accrual_rate,
)
from leave_accrual.services.cycle import CycleRange, as_local_datetime, get_current_cycle_range
from leave_accrual.services.duration import calculate_leave_taken
from leave_accrual.services.rounding import round_one_decimal, to_decimal

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class EmployeeLeaveState:
    """Everything computed for one employee at one point in time."""

    balances: LeaveBalances
    accrued: AccrualResult
    taken: dict[LeaveType, float]
    cycle_range: CycleRange


# ---------------------------------------------------------------------------
# Defaults and normalization
# ---------------------------------------------------------------------------


def default_type_balance(leave_type: LeaveType) -> LeaveTypeBalance:
    """Zeroed balance entry carrying the constant allocation and monthly rate."""
    return LeaveTypeBalance(
        balance=0.0,
        yearly_allocation=float(YEARLY_ALLOCATIONS[leave_type]),
        monthly_accrual=float(monthly_accrual_rate(leave_type)),
        accrued=0.0,
        taken=0.0,
    )


def default_leave_balances() -> LeaveBalances:
    """Fresh defaults for an employee that has never been computed."""
    return LeaveBalances(
        annual=default_type_balance(LeaveType.ANNUAL),
        casual=default_type_balance(LeaveType.CASUAL),
        medical=default_type_balance(LeaveType.MEDICAL),
    )


def _finite_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _normalize_type_entry(raw: object, defaults: LeaveTypeBalance) -> LeaveTypeBalance:
    """Parse one stored per-type entry, falling back to ``defaults`` field by field.

    A bare number is read as the balance, which is how older imports stored it.
    """
    fields: Mapping[str, object] = raw if isinstance(raw, Mapping) else {"balance": raw}

    def pick(name: str, default: float) -> float:
        number = _finite_number(fields.get(name))
        return default if number is None else number

    return LeaveTypeBalance(
        balance=round_one_decimal(pick("balance", defaults.balance)),
        yearly_allocation=pick("yearly_allocation", defaults.yearly_allocation),
        monthly_accrual=pick("monthly_accrual", defaults.monthly_accrual),
        accrued=round_one_decimal(pick("accrued", defaults.accrued)),
        taken=round_one_decimal(pick("taken", defaults.taken)),
    )


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def normalize_leave_balances(raw: Mapping[str, Any] | None) -> LeaveBalances:
    """Leniently parse a stored projection. Missing or malformed parts become defaults."""
    balances = default_leave_balances()
    if not isinstance(raw, Mapping):
        return balances

    return LeaveBalances(
        annual=_normalize_type_entry(raw.get(LeaveType.ANNUAL.value), balances.annual),
        casual=_normalize_type_entry(raw.get(LeaveType.CASUAL.value), balances.casual),
        medical=_normalize_type_entry(raw.get(LeaveType.MEDICAL.value), balances.medical),
        cycle_start=_parse_timestamp(raw.get("cycle_start")),
        cycle_end=_parse_timestamp(raw.get("cycle_end")),
        last_accrual_run=_parse_timestamp(raw.get("last_accrual_run")),
    )


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def _as_employee_record(employee: EmployeeRecord | Mapping[str, Any] | object) -> EmployeeRecord:
    if isinstance(employee, EmployeeRecord):
        return employee
    return EmployeeRecord.model_validate(employee)


def build_employee_leave_state(
    employee: EmployeeRecord | Mapping[str, Any],
    applications: Iterable[LeaveApplicationRecord | Mapping[str, object] | None] | None,
    *,
    as_of: date | datetime | None = None,
    cycle_range: CycleRange | None = None,
    holidays: Iterable[object] | None = None,
) -> EmployeeLeaveState:
    """Compute the full balance projection for one employee.

    Pure: the result depends only on the arguments, so repeated calls with the
    same inputs produce equal projections. Balances may go negative when
    approved leave runs ahead of accrual.
    """
    record = _as_employee_record(employee)
    as_of_dt = as_local_datetime(as_of)
    cycle = cycle_range or get_current_cycle_range(as_of_dt)

    accrued = calculate_accrued_leave(record, cycle, as_of_dt)
    taken = calculate_leave_taken(record.id, applications, cycle, as_of_dt, holidays)

    per_type: dict[str, LeaveTypeBalance] = {}
    for leave_type in LeaveType:
        accrued_days = accrued.totals.get(leave_type, 0.0)
        taken_days = taken.get(leave_type, 0.0)
        defaults = default_type_balance(leave_type)
        per_type[leave_type.value] = LeaveTypeBalance(
            balance=round_one_decimal(to_decimal(accrued_days) - to_decimal(taken_days)),
            yearly_allocation=defaults.yearly_allocation,
            monthly_accrual=defaults.monthly_accrual,
            accrued=round_one_decimal(accrued_days),
            taken=round_one_decimal(taken_days),
        )

    balances = LeaveBalances(
        **per_type,
        cycle_start=cycle.start,
        cycle_end=cycle.end,
        last_accrual_run=as_of_dt,
    )
    return EmployeeLeaveState(balances=balances, accrued=accrued, taken=taken, cycle_range=cycle)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_stored_leave_balances(session: AsyncSession, employee_id: uuid.UUID) -> LeaveBalances | None:
    """Return the cached projection for an employee, or None if the employee does not exist.

    Employees that have never been computed get zeroed defaults.
    """
    result = await session.execute(select(col(Employee.leave_balances)).where(col(Employee.id) == employee_id))
    row = result.one_or_none()
    if row is None:
        return None
    return normalize_leave_balances(row[0])
