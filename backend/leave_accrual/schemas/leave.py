"""Immutable input records consumed by the leave calculators.

Employment and application dates arrive from HR data of uneven quality.
Anything that does not parse as a date is treated as absent instead of
raising, and the calculators fall back to the cycle boundaries.
"""

# ruff: noqa: TC003
from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from leave_accrual.config import get_settings


def coerce_date(value: object) -> date | None:
    """Return the calendar date of ``value`` or None when it is missing or malformed.

    Accepts ``date``, ``datetime`` (time of day dropped) and ISO-8601 strings
    such as ``2024-10-07`` or ``2024-10-07T09:30:00Z``. Timestamps carrying an
    offset are first converted to the configured timezone, so the calendar day
    agrees with the local "now" the calculators compare against.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(get_settings().timezone))
        return value.date()
    if isinstance(value, date):
        return value
    return None


def _first_present(data: Mapping[str, Any], *keys: str) -> object:
    """First value under ``keys`` that is not None. Empty or malformed values still win."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _stringify_id(value: object) -> str:
    # Ids compare loosely: numeric 1 and "1" refer to the same employee.
    return "" if value is None else str(value)


class EmployeeRecord(BaseModel):
    """Read-only snapshot of an employee for one calculation run.

    Built from ORM rows or from camelCase JSON documents (``internshipStartDate``,
    ``endDate``, ...) exported by the legacy portal.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True, populate_by_name=True)

    id: str
    internship_start_date: date | None = Field(
        default=None, validation_alias=AliasChoices("internship_start_date", "internshipStartDate")
    )
    full_time_start_date: date | None = Field(
        default=None, validation_alias=AliasChoices("full_time_start_date", "fullTimeStartDate")
    )
    start_date: date | None = Field(default=None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: date | None = Field(default=None, validation_alias=AliasChoices("end_date", "endDate"))
    full_time_end_date: date | None = Field(
        default=None, validation_alias=AliasChoices("full_time_end_date", "fullTimeEndDate")
    )
    leave_balances: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("leave_balances", "leaveBalances")
    )
    # Resolved from the raw fields above; see _resolve_employment_bounds.
    employment_start: date | None = None
    employment_end: date | None = None

    @model_validator(mode="before")
    @classmethod
    def _resolve_employment_bounds(cls, data: Any) -> Any:
        """Pick the employment start and end from the raw, unparsed fields.

        The start prefers a valid internship date, then the first full-time or
        ``start_date`` value that is present. The end takes ``end_date`` when
        present, else ``full_time_end_date``. A present but malformed value does
        not fall through to the next field; it resolves to None, which the
        calculators read as the cycle boundary.
        """
        if isinstance(data, cls):
            return data
        if isinstance(data, Mapping):
            raw = dict(data)
        else:
            raw = {name: getattr(data, name, None) for name in cls.model_fields}

        internship = coerce_date(_first_present(raw, "internship_start_date", "internshipStartDate"))
        later_start = _first_present(raw, "full_time_start_date", "fullTimeStartDate", "start_date", "startDate")
        raw["employment_start"] = internship or coerce_date(later_start)
        raw["employment_end"] = coerce_date(
            _first_present(raw, "end_date", "endDate", "full_time_end_date", "fullTimeEndDate")
        )
        return raw

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: object) -> str:
        return _stringify_id(value)

    @field_validator(
        "internship_start_date",
        "full_time_start_date",
        "start_date",
        "end_date",
        "full_time_end_date",
        mode="before",
    )
    @classmethod
    def _lenient_date(cls, value: object) -> date | None:
        return coerce_date(value)

    @field_validator("leave_balances", mode="before")
    @classmethod
    def _ignore_non_mapping(cls, value: object) -> object:
        return value if isinstance(value, dict) else None


class LeaveApplicationRecord(BaseModel):
    """Read-only snapshot of a leave application.

    ``from`` and ``to`` are accepted as input keys alongside ``from_date`` and
    ``to_date``. Unparseable dates become None and the application is skipped.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True, populate_by_name=True)

    employee_id: str = Field(validation_alias=AliasChoices("employee_id", "employeeId"))
    type: str
    from_date: date | None = Field(default=None, validation_alias=AliasChoices("from_date", "from"))
    to_date: date | None = Field(default=None, validation_alias=AliasChoices("to_date", "to"))
    status: str = ""
    half_day: bool = Field(default=False, validation_alias=AliasChoices("half_day", "halfDay"))

    @field_validator("employee_id", mode="before")
    @classmethod
    def _normalize_employee_id(cls, value: object) -> str:
        return _stringify_id(value)

    @field_validator("type", "status", mode="before")
    @classmethod
    def _text(cls, value: object) -> str:
        return "" if value is None else str(value)

    @field_validator("from_date", "to_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: object) -> date | None:
        return coerce_date(value)

    @field_validator("half_day", mode="before")
    @classmethod
    def _truthy(cls, value: object) -> bool:
        return bool(value)

    @property
    def is_approved(self) -> bool:
        return self.status.lower() == "approved"
