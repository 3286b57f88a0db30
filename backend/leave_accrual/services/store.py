"""Store accessors for leave recomputation: snapshot reads and one bulk write-back."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from leave_accrual.exceptions import LeaveStoreError
from leave_accrual.models.employee import Employee
from leave_accrual.models.enums import LeaveStatus
from leave_accrual.models.holiday import Holiday
from leave_accrual.models.leave import LeaveApplication
from leave_accrual.schemas.leave import EmployeeRecord, LeaveApplicationRecord

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_accrual.services.cycle import CycleRange


@dataclass(frozen=True)
class LeaveInputs:
    """Immutable snapshot of everything one recomputation run reads."""

    employees: tuple[EmployeeRecord, ...]
    applications: tuple[LeaveApplicationRecord, ...]
    holidays: frozenset[date]


@dataclass(frozen=True)
class BalanceUpdate:
    """A recomputed projection waiting to be written for one employee."""

    employee_id: str
    leave_balances: dict[str, Any]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def load_employees(session: AsyncSession, *, refresh: bool = False) -> tuple[EmployeeRecord, ...]:
    """Read every employee. ``refresh`` bypasses objects already cached in the session."""
    stmt = select(Employee).order_by(col(Employee.created_at), col(Employee.id))
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return tuple(EmployeeRecord.model_validate(employee) for employee in result.scalars().all())


async def load_approved_applications(
    session: AsyncSession,
    *,
    refresh: bool = False,
) -> tuple[LeaveApplicationRecord, ...]:
    """Read approved leave applications for all employees."""
    stmt = select(LeaveApplication).where(func.lower(col(LeaveApplication.status)) == LeaveStatus.APPROVED.value)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return tuple(LeaveApplicationRecord.model_validate(application) for application in result.scalars().all())


async def load_holiday_dates(
    session: AsyncSession,
    start_date: date | None = None,
    end_date: date | None = None,
) -> frozenset[date]:
    """Fetch holiday dates, optionally limited to ``[start_date, end_date]``."""
    filters = []
    if start_date is not None:
        filters.append(col(Holiday.date) >= start_date)
    if end_date is not None:
        filters.append(col(Holiday.date) <= end_date)

    result = await session.execute(select(col(Holiday.date)).where(*filters))
    return frozenset(row[0] for row in result.all())


async def load_leave_inputs(
    session: AsyncSession,
    cycle_range: CycleRange | None = None,
    *,
    refresh: bool = False,
) -> LeaveInputs:
    """Snapshot employees, approved applications and holidays for one run."""
    employees = await load_employees(session, refresh=refresh)
    applications = await load_approved_applications(session, refresh=refresh)
    if cycle_range is None:
        holidays = await load_holiday_dates(session)
    else:
        holidays = await load_holiday_dates(session, cycle_range.start.date(), cycle_range.end.date())
    return LeaveInputs(employees=employees, applications=applications, holidays=holidays)


# ---------------------------------------------------------------------------
# Write-back
# ---------------------------------------------------------------------------


async def save_leave_balances(session: AsyncSession, updates: Sequence[BalanceUpdate]) -> None:
    """Write all recomputed projections in one bulk UPDATE and commit.

    Failures are rolled back and raised as LeaveStoreError. No retry here;
    the next scheduled run recomputes from scratch.
    """
    if not updates:
        return

    rows = [{"id": uuid.UUID(item.employee_id), "leave_balances": item.leave_balances} for item in updates]
    try:
        await session.execute(update(Employee), rows)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        msg = f"Failed to write leave balances for {len(rows)} employee(s)"
        raise LeaveStoreError(msg) from exc
