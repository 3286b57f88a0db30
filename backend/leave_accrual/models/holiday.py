# ruff: noqa: TC003
from __future__ import annotations

import datetime

from sqlmodel import Field

from leave_accrual.models.base import UUIDBase


class Holiday(UUIDBase, table=True):
    """A public holiday that excludes the day from leave deductions."""

    __tablename__ = "holiday"

    date: datetime.date = Field(unique=True)
    name: str = Field(max_length=255)
