"""Batch runner: recompute every employee's leave projection and persist only what changed.

Each run is a full, stateless recomputation from employment dates, approved
applications and holidays. Inputs are snapshotted first, updates are planned
purely, then written back in a single bulk update. Runs must not overlap;
there is no lock, so a single scheduler process owns these jobs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from leave_accrual.services.balance import build_employee_leave_state, default_leave_balances
from leave_accrual.services.cycle import as_local_datetime, get_current_cycle_range
from leave_accrual.services.store import BalanceUpdate, load_employees, load_leave_inputs, save_leave_balances

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_accrual.schemas.balance import LeaveBalances
    from leave_accrual.schemas.leave import EmployeeRecord
    from leave_accrual.services.cycle import CycleRange
    from leave_accrual.services.store import LeaveInputs

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class RecalculationResult:
    """Summary of a full leave balance recomputation."""

    processed: int
    updated: int
    cycle_start: datetime
    cycle_end: datetime
    as_of: datetime


@dataclass
class ResetResult:
    """Summary of a fiscal cycle reset."""

    processed: int = 0
    updated: int = 0


# ---------------------------------------------------------------------------
# Pure planning (no DB)
# ---------------------------------------------------------------------------


def _changed(employee: EmployeeRecord, balances: LeaveBalances) -> BalanceUpdate | None:
    projection = balances.model_dump(mode="json")
    if (employee.leave_balances or {}) == projection:
        return None
    return BalanceUpdate(employee_id=employee.id, leave_balances=projection)


def plan_balance_updates(
    inputs: LeaveInputs,
    *,
    as_of: datetime,
    cycle_range: CycleRange,
) -> list[BalanceUpdate]:
    """Recompute every employee and return updates for those whose stored projection differs."""
    updates: list[BalanceUpdate] = []
    for employee in inputs.employees:
        state = build_employee_leave_state(
            employee,
            inputs.applications,
            as_of=as_of,
            cycle_range=cycle_range,
            holidays=inputs.holidays,
        )
        pending = _changed(employee, state.balances)
        if pending is not None:
            updates.append(pending)
    return updates


def plan_cycle_reset(employees: Iterable[EmployeeRecord], cycle_range: CycleRange) -> list[BalanceUpdate]:
    """Zero every balance and roll the cycle window forward, without reading leave history."""
    updates: list[BalanceUpdate] = []
    for employee in employees:
        balances = default_leave_balances().model_copy(
            update={"cycle_start": cycle_range.start, "cycle_end": cycle_range.end},
        )
        pending = _changed(employee, balances)
        if pending is not None:
            updates.append(pending)
    return updates


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


async def recalculate_leave_balances_for_cycle(
    session: AsyncSession,
    now: date | datetime | None = None,
    *,
    refresh: bool = False,
) -> RecalculationResult:
    """Recompute all employees' balances for the cycle containing ``now``.

    Idempotent: a second run with the same inputs and ``now`` writes nothing.

    Args:
        session: Database session; committed only when something changed.
        now: Reference point for the cycle and the accrual cutoff (defaults to local now).
        refresh: Re-read rows from the database even if already loaded in ``session``.
    """
    as_of = as_local_datetime(now)
    cycle_range = get_current_cycle_range(as_of)

    inputs = await load_leave_inputs(session, cycle_range, refresh=refresh)
    updates = plan_balance_updates(inputs, as_of=as_of, cycle_range=cycle_range)
    await save_leave_balances(session, updates)

    logger.info(
        "Leave recalculation as of %s: processed=%d updated=%d",
        as_of.isoformat(),
        len(inputs.employees),
        len(updates),
    )
    return RecalculationResult(
        processed=len(inputs.employees),
        updated=len(updates),
        cycle_start=cycle_range.start,
        cycle_end=cycle_range.end,
        as_of=as_of,
    )


async def accrue_monthly_leave(session: AsyncSession, now: date | datetime | None = None) -> RecalculationResult:
    """Scheduled accrual entry point. Always a full recomputation, never an incremental top-up."""
    return await recalculate_leave_balances_for_cycle(session, now)


async def reset_leave_cycle(session: AsyncSession, now: date | datetime | None = None) -> ResetResult:
    """Start a new fiscal cycle: zero accrued, taken and balance for every employee."""
    cycle_range = get_current_cycle_range(now)

    employees = await load_employees(session)
    updates = plan_cycle_reset(employees, cycle_range)
    await save_leave_balances(session, updates)

    logger.info(
        "Leave cycle reset to %s - %s: processed=%d updated=%d",
        cycle_range.start.date().isoformat(),
        cycle_range.end.date().isoformat(),
        len(employees),
        len(updates),
    )
    return ResetResult(processed=len(employees), updated=len(updates))
