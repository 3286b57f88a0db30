"""Fiscal leave cycle resolution (July 1 to June 30)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from leave_accrual.config import get_settings

# Month (1-based) in which the fiscal leave cycle starts.
CYCLE_START_MONTH = 7


@dataclass(frozen=True)
class CycleRange:
    """Closed window ``[start, end]`` of one fiscal leave cycle, in local time."""

    start: datetime
    end: datetime


def local_now() -> datetime:
    """Return the current wall-clock time in the configured timezone, without tzinfo."""
    tz = ZoneInfo(get_settings().timezone)
    return datetime.now(tz).replace(tzinfo=None)


def as_local_datetime(value: date | datetime | None) -> datetime:
    """Normalize a reference point to a naive local datetime.

    None means "now"; a plain date means local midnight of that day; an aware
    datetime is converted to the configured timezone.
    """
    if value is None:
        return local_now()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(ZoneInfo(get_settings().timezone)).replace(tzinfo=None)
        return value
    return datetime(value.year, value.month, value.day)


def get_current_cycle_range(now: date | datetime | None = None) -> CycleRange:
    """Return the fiscal cycle containing ``now``.

    The fiscal year is ``now.year`` from July onwards and ``now.year - 1``
    before July. The cycle runs from July 1 00:00 to June 30 23:59:59.999.
    """
    reference = as_local_datetime(now)
    year = reference.year if reference.month >= CYCLE_START_MONTH else reference.year - 1
    start = datetime(year, CYCLE_START_MONTH, 1)
    end = datetime(year + 1, CYCLE_START_MONTH - 1, 30, 23, 59, 59, 999000)
    return CycleRange(start=start, end=end)


def is_cycle_start(day: date) -> bool:
    """True on the first day of a fiscal cycle (July 1)."""
    return day.month == CYCLE_START_MONTH and day.day == 1
