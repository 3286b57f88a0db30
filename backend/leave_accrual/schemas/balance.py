# ruff: noqa: TC001, TC003
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from leave_accrual.models.enums import LeaveType

# ---------------------------------------------------------------------------
# Cached balance projection stored on the employee record
# ---------------------------------------------------------------------------


class LeaveTypeBalance(BaseModel):
    """Entitlement and consumption for one leave type, in days."""

    balance: float = 0.0  # accrued - taken, may be negative
    yearly_allocation: float = 0.0
    monthly_accrual: float = 0.0
    accrued: float = 0.0
    taken: float = 0.0


class LeaveBalances(BaseModel):
    """Per-type balances plus the cycle they were computed for."""

    annual: LeaveTypeBalance
    casual: LeaveTypeBalance
    medical: LeaveTypeBalance
    cycle_start: datetime | None = None
    cycle_end: datetime | None = None
    last_accrual_run: datetime | None = None

    def for_type(self, leave_type: LeaveType) -> LeaveTypeBalance:
        """Return the balance entry for ``leave_type``."""
        entry: LeaveTypeBalance = getattr(self, leave_type.value)
        return entry
