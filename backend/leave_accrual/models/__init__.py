from sqlmodel import SQLModel

from leave_accrual.models.base import TimestampMixin, UUIDBase
from leave_accrual.models.employee import Employee
from leave_accrual.models.enums import LeaveStatus, LeaveType
from leave_accrual.models.holiday import Holiday
from leave_accrual.models.leave import LeaveApplication

__all__ = [
    "Employee",
    "Holiday",
    "LeaveApplication",
    "LeaveStatus",
    "LeaveType",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
]
