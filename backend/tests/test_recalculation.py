"""Tests for the batch recomputation runner, the cycle reset and the store write-back."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import OperationalError

from leave_accrual.exceptions import LeaveStoreError
from leave_accrual.models import Employee, Holiday, LeaveApplication, LeaveStatus
from leave_accrual.schemas.leave import EmployeeRecord, LeaveApplicationRecord
from leave_accrual.services.balance import build_employee_leave_state, get_stored_leave_balances
from leave_accrual.services.cycle import get_current_cycle_range
from leave_accrual.services.recalculation import (
    accrue_monthly_leave,
    plan_balance_updates,
    plan_cycle_reset,
    recalculate_leave_balances_for_cycle,
    reset_leave_cycle,
)
from leave_accrual.services.store import (
    BalanceUpdate,
    LeaveInputs,
    load_approved_applications,
    load_holiday_dates,
    load_leave_inputs,
    save_leave_balances,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

YEAR_END = date(2025, 6, 30)
CYCLE_2024 = get_current_cycle_range(YEAR_END)


async def _seed(session: AsyncSession) -> dict[str, Employee]:
    """Three employees: a veteran with leave, a mid-cycle joiner, and someone who left last cycle."""
    veteran = Employee(name="Veteran", internship_start_date=date(2020, 1, 1))
    joiner = Employee(name="Joiner", full_time_start_date=date(2024, 11, 15))
    leaver = Employee(name="Leaver", start_date=date(2019, 1, 1), end_date=date(2024, 5, 31))
    session.add_all([veteran, joiner, leaver])
    await session.flush()

    session.add_all(
        [
            LeaveApplication(
                employee_id=veteran.id,
                type="annual",
                from_date=date(2024, 10, 7),
                to_date=date(2024, 10, 8),
                status=LeaveStatus.APPROVED,
            ),
            LeaveApplication(
                employee_id=veteran.id,
                type="casual",
                from_date=date(2025, 3, 10),
                to_date=date(2025, 3, 10),
                status="APPROVED",
            ),
            LeaveApplication(
                employee_id=veteran.id,
                type="medical",
                from_date=date(2025, 2, 3),
                to_date=date(2025, 2, 5),
                status=LeaveStatus.PENDING,
            ),
            LeaveApplication(
                employee_id=joiner.id,
                type="annual",
                from_date=date(2025, 1, 6),
                to_date=date(2025, 1, 10),
                status=LeaveStatus.APPROVED,
            ),
            Holiday(date=date(2025, 1, 8), name="Founders Day"),
            Holiday(date=date(2023, 1, 2), name="Old Holiday"),
        ]
    )
    await session.commit()
    return {"veteran": veteran, "joiner": joiner, "leaver": leaver}


# ===========================================================================
# Store reads and write-back
# ===========================================================================


class TestStore:
    """Tests for the snapshot loaders and save_leave_balances."""

    async def test_load_leave_inputs(self, db_session: AsyncSession) -> None:
        employees = await _seed(db_session)
        inputs = await load_leave_inputs(db_session, CYCLE_2024)

        assert len(inputs.employees) == 3
        assert {e.id for e in inputs.employees} == {str(employee.id) for employee in employees.values()}
        assert len(inputs.applications) == 3
        assert all(app.is_approved for app in inputs.applications)
        assert inputs.holidays == frozenset({date(2025, 1, 8)})

    async def test_applications_keep_employee_id_as_text(self, db_session: AsyncSession) -> None:
        employees = await _seed(db_session)
        applications = await load_approved_applications(db_session)
        assert {app.employee_id for app in applications} == {
            str(employees["veteran"].id),
            str(employees["joiner"].id),
        }

    async def test_holidays_unbounded(self, db_session: AsyncSession) -> None:
        await _seed(db_session)
        assert await load_holiday_dates(db_session) == frozenset({date(2025, 1, 8), date(2023, 1, 2)})

    async def test_save_nothing_is_a_noop(self, db_session: AsyncSession) -> None:
        await save_leave_balances(db_session, [])

    async def test_write_failure_raises_store_error(
        self,
        db_session: AsyncSession,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def _fail(*args: object, **kwargs: object) -> None:
            raise OperationalError("UPDATE employee", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "execute", _fail)
        update = BalanceUpdate(employee_id=str(uuid.uuid4()), leave_balances={})

        with pytest.raises(LeaveStoreError) as exc_info:
            await save_leave_balances(db_session, [update])

        assert "1 employee(s)" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, OperationalError)


# ===========================================================================
# Pure planning
# ===========================================================================


class TestPlanBalanceUpdates:
    """Tests for plan_balance_updates."""

    def _inputs(self, stored: dict[str, object] | None = None) -> LeaveInputs:
        employee = EmployeeRecord.model_validate(
            {"id": "a1", "internshipStartDate": "2020-01-01", "leaveBalances": stored}
        )
        application = LeaveApplicationRecord.model_validate(
            {"employeeId": "a1", "type": "annual", "from": "2024-10-07", "to": "2024-10-08", "status": "approved"}
        )
        return LeaveInputs(employees=(employee,), applications=(application,), holidays=frozenset())

    def test_new_projection_planned(self) -> None:
        updates = plan_balance_updates(self._inputs(), as_of=datetime(2025, 6, 30), cycle_range=CYCLE_2024)
        assert len(updates) == 1
        assert updates[0].employee_id == "a1"
        assert updates[0].leave_balances["annual"]["balance"] == 8.0
        assert updates[0].leave_balances["cycle_start"] == "2024-07-01T00:00:00"

    def test_unchanged_projection_skipped(self) -> None:
        inputs = self._inputs()
        state = build_employee_leave_state(
            inputs.employees[0], inputs.applications, as_of=datetime(2025, 6, 30), cycle_range=CYCLE_2024
        )
        stored = state.balances.model_dump(mode="json")
        assert plan_balance_updates(self._inputs(stored), as_of=datetime(2025, 6, 30), cycle_range=CYCLE_2024) == []

    def test_later_as_of_is_a_change(self) -> None:
        inputs = self._inputs()
        state = build_employee_leave_state(
            inputs.employees[0], inputs.applications, as_of=datetime(2025, 6, 29), cycle_range=CYCLE_2024
        )
        stored = state.balances.model_dump(mode="json")
        updates = plan_balance_updates(self._inputs(stored), as_of=datetime(2025, 6, 30), cycle_range=CYCLE_2024)
        assert len(updates) == 1
        assert updates[0].leave_balances["last_accrual_run"] == "2025-06-30T00:00:00"


class TestPlanCycleReset:
    """Tests for plan_cycle_reset."""

    def test_zeroes_and_rolls_window(self) -> None:
        cycle = get_current_cycle_range(date(2025, 7, 1))
        employee = EmployeeRecord.model_validate(
            {"id": "a1", "leaveBalances": {"annual": {"balance": 4.5, "accrued": 8.0, "taken": 3.5}}}
        )
        updates = plan_cycle_reset([employee], cycle)

        assert len(updates) == 1
        projection = updates[0].leave_balances
        assert projection["annual"] == {
            "balance": 0.0,
            "yearly_allocation": 10.0,
            "monthly_accrual": 10 / 12,
            "accrued": 0.0,
            "taken": 0.0,
        }
        assert projection["cycle_start"] == "2025-07-01T00:00:00"
        assert projection["cycle_end"] == "2026-06-30T23:59:59.999000"
        assert projection["last_accrual_run"] is None

    def test_already_reset_skipped(self) -> None:
        cycle = get_current_cycle_range(date(2025, 7, 1))
        first = plan_cycle_reset([EmployeeRecord.model_validate({"id": "a1"})], cycle)
        employee = EmployeeRecord.model_validate({"id": "a1", "leaveBalances": first[0].leave_balances})
        assert plan_cycle_reset([employee], cycle) == []


# ===========================================================================
# Orchestration (DB)
# ===========================================================================


class TestRecalculateLeaveBalancesForCycle:
    """Tests for recalculate_leave_balances_for_cycle."""

    async def test_recomputes_and_persists(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        employees = await _seed(db_session)
        result = await recalculate_leave_balances_for_cycle(db_session, YEAR_END)

        assert result.processed == 3
        assert result.updated == 3
        assert result.cycle_start == datetime(2024, 7, 1)
        assert result.as_of == datetime(2025, 6, 30)

        async with session_factory() as session:
            veteran = await get_stored_leave_balances(session, employees["veteran"].id)
            joiner = await get_stored_leave_balances(session, employees["joiner"].id)
            leaver = await get_stored_leave_balances(session, employees["leaver"].id)

        assert veteran is not None
        assert (veteran.annual.balance, veteran.casual.balance, veteran.medical.balance) == (8.0, 4.0, 14.0)
        assert veteran.last_accrual_run == datetime(2025, 6, 30)

        # 8 months accrued, Founders Day is not deducted.
        assert joiner is not None
        assert joiner.annual.accrued == 6.7
        assert joiner.annual.taken == 4.0
        assert joiner.annual.balance == 2.7
        assert joiner.casual.balance == 3.3

        assert leaver is not None
        assert leaver.annual.balance == 0.0
        assert leaver.cycle_start == datetime(2024, 7, 1)

    async def test_second_run_writes_nothing(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await _seed(db_session)
        await recalculate_leave_balances_for_cycle(db_session, YEAR_END)

        async with session_factory() as session:
            again = await recalculate_leave_balances_for_cycle(session, YEAR_END)

        assert again.processed == 3
        assert again.updated == 0

    async def test_refresh_rereads_rows_in_same_session(self, db_session: AsyncSession) -> None:
        await _seed(db_session)
        await recalculate_leave_balances_for_cycle(db_session, YEAR_END)

        again = await recalculate_leave_balances_for_cycle(db_session, YEAR_END, refresh=True)
        assert again.updated == 0

    async def test_empty_store(self, db_session: AsyncSession) -> None:
        result = await recalculate_leave_balances_for_cycle(db_session, YEAR_END)
        assert result.processed == 0
        assert result.updated == 0

    async def test_logs_summary(self, db_session: AsyncSession, caplog: pytest.LogCaptureFixture) -> None:
        await _seed(db_session)
        with caplog.at_level(logging.INFO, logger="leave_accrual.services.recalculation"):
            await recalculate_leave_balances_for_cycle(db_session, YEAR_END)
        assert "processed=3 updated=3" in caplog.text

    async def test_accrue_monthly_leave_is_full_recompute(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        employees = await _seed(db_session)
        result = await accrue_monthly_leave(db_session, date(2024, 9, 15))
        assert result.updated == 3

        async with session_factory() as session:
            veteran = await get_stored_leave_balances(session, employees["veteran"].id)

        # Three months in and no leave taken yet.
        assert veteran is not None
        assert veteran.annual.accrued == 2.5
        assert veteran.annual.taken == 0.0


class TestResetLeaveCycle:
    """Tests for reset_leave_cycle."""

    async def test_reset_zeroes_everyone(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        employees = await _seed(db_session)
        await recalculate_leave_balances_for_cycle(db_session, YEAR_END)

        async with session_factory() as session:
            result = await reset_leave_cycle(session, date(2025, 7, 1))
        assert result.processed == 3
        assert result.updated == 3

        async with session_factory() as session:
            veteran = await get_stored_leave_balances(session, employees["veteran"].id)

        assert veteran is not None
        assert veteran.annual.balance == 0.0
        assert veteran.annual.accrued == 0.0
        assert veteran.annual.taken == 0.0
        assert veteran.cycle_start == datetime(2025, 7, 1)
        assert veteran.cycle_end == datetime(2026, 6, 30, 23, 59, 59, 999000)
        assert veteran.last_accrual_run is None

    async def test_reset_twice_writes_once(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await _seed(db_session)
        await reset_leave_cycle(db_session, date(2025, 7, 1))

        async with session_factory() as session:
            again = await reset_leave_cycle(session, date(2025, 7, 1))
        assert again.updated == 0
