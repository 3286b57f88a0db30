"""Leave-taken calculator: working days consumed by approved leave within a cycle."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from pydantic import ValidationError

from leave_accrual.models.enums import LeaveType
from leave_accrual.schemas.leave import LeaveApplicationRecord, coerce_date
from leave_accrual.services.cycle import as_local_datetime
from leave_accrual.services.rounding import round_one_decimal

if TYPE_CHECKING:
    from leave_accrual.services.cycle import CycleRange

logger = logging.getLogger(__name__)

_SUPPORTED_TYPES = frozenset(leave_type.value for leave_type in LeaveType)
_HALF_DAY = 0.5


def build_holiday_set(holidays: Iterable[object] | None) -> set[date]:
    """Collect holiday dates from strings, dates, mappings or objects with a ``date`` attribute.

    Entries that do not resolve to a valid date are ignored.
    """
    holiday_dates: set[date] = set()
    for entry in holidays or ():
        if isinstance(entry, (str, date)):
            raw: object = entry
        elif isinstance(entry, Mapping):
            raw = entry.get("date")
        else:
            raw = getattr(entry, "date", None)
        parsed = coerce_date(raw)
        if parsed is not None:
            holiday_dates.add(parsed)
    return holiday_dates


def _is_working_day(day: date, holiday_dates: set[date]) -> bool:
    return day.weekday() < 5 and day not in holiday_dates


def _as_application_record(raw: object) -> LeaveApplicationRecord | None:
    if isinstance(raw, LeaveApplicationRecord):
        return raw
    if raw is None:
        return None
    try:
        return LeaveApplicationRecord.model_validate(raw)
    except ValidationError as exc:
        logger.debug("Skipping malformed leave application: %d validation error(s)", exc.error_count())
        return None


def count_leave_days(
    application: LeaveApplicationRecord,
    window_start: date,
    window_end: date,
    holiday_dates: set[date],
) -> float:
    """Count the working days of ``application`` that fall inside ``[window_start, window_end]``.

    A half-day counts 0.5 only when its own date is inside the window and is a
    working day. When clipping trims the half-day's date out of the window it
    counts zero, even if the application's ``to`` date is still inside.
    """
    start = application.from_date
    end = application.to_date
    if start is None or end is None:
        return 0

    capped_start = max(start, window_start)
    capped_end = min(end, window_end)
    if capped_end < capped_start:
        return 0

    if application.half_day:
        if capped_start != start:
            return 0
        return _HALF_DAY if _is_working_day(start, holiday_dates) else 0

    days = 0
    current_date = capped_start
    one_day = timedelta(days=1)
    while current_date <= capped_end:
        if _is_working_day(current_date, holiday_dates):
            days += 1
        current_date += one_day

    return days


def calculate_leave_taken(
    employee_id: object,
    applications: Iterable[LeaveApplicationRecord | Mapping[str, object] | None] | None,
    cycle_range: CycleRange,
    as_of: date | datetime | None = None,
    holidays: Iterable[object] | None = None,
) -> dict[LeaveType, float]:
    """Sum approved leave per type consumed between the cycle start and ``as_of``.

    Entries that are None or fail validation (no employee id or type) are
    skipped. So are applications for other employees, not approved, of an
    unsupported type, with unparseable dates or entirely outside the window.
    """
    totals: dict[LeaveType, float] = {leave_type: 0.0 for leave_type in LeaveType}
    if applications is None:
        return totals

    window_start = cycle_range.start.date()
    window_end = min(cycle_range.end, as_local_datetime(as_of)).date()
    holiday_dates = build_holiday_set(holidays)
    wanted_id = "" if employee_id is None else str(employee_id)

    for raw in applications:
        application = _as_application_record(raw)
        if application is None:
            continue
        if application.employee_id != wanted_id:
            continue
        if not application.is_approved:
            continue
        if application.type not in _SUPPORTED_TYPES:
            continue
        if application.from_date is None or application.to_date is None:
            continue
        if application.to_date < window_start or application.from_date > window_end:
            continue

        leave_type = LeaveType(application.type)
        days = count_leave_days(application, window_start, window_end, holiday_dates)
        totals[leave_type] = round_one_decimal(totals[leave_type] + days)

    return totals
