# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_accrual.models.base import TimestampMixin, UUIDBase
from leave_accrual.models.enums import LeaveStatus


class LeaveApplication(UUIDBase, TimestampMixin, table=True):
    """A leave request for a date range, optionally a single half-day."""

    __tablename__ = "leave_application"
    __table_args__ = (sa.Index("ix_leave_application_employee_status", "employee_id", "status"),)

    employee_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("employee.id", ondelete="CASCADE"), nullable=False),
    )
    type: str = Field(max_length=20)
    from_date: datetime.date
    to_date: datetime.date
    status: str = Field(default=LeaveStatus.PENDING, max_length=20)
    half_day: bool = False
    reason: str | None = Field(default=None, max_length=1000)
