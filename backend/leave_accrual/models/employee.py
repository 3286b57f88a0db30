# ruff: noqa: TC003
from __future__ import annotations

import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from leave_accrual.models.base import TimestampMixin, UUIDBase


class Employee(UUIDBase, TimestampMixin, table=True):
    """Employee record with the cached leave balance projection."""

    __tablename__ = "employee"

    name: str = Field(max_length=255)
    email: str | None = Field(default=None, max_length=255)
    internship_start_date: datetime.date | None = None
    full_time_start_date: datetime.date | None = None
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    full_time_end_date: datetime.date | None = None
    # Derived from applications and employment dates; rewritten whole on every run.
    leave_balances: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
