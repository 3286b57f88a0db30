from __future__ import annotations

import enum


class LeaveType(enum.StrEnum):
    """Leave types that accrue and can be deducted."""

    ANNUAL = "annual"
    CASUAL = "casual"
    MEDICAL = "medical"


class LeaveStatus(enum.StrEnum):
    """Lifecycle of a leave application. Only APPROVED consumes balance."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
