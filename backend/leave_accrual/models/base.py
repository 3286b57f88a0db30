from __future__ import annotations

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def _new_row_id() -> uuid.UUID:
    return uuid.uuid4()


def _created_now() -> datetime:
    return datetime.now(UTC)


class UUIDBase(SQLModel):
    """Shared UUID primary key for employee, leave application and holiday rows.

    Bulk balance write-back addresses employees by this key.
    """

    id: uuid.UUID = Field(default_factory=_new_row_id, primary_key=True, sa_type=sa.Uuid)


class TimestampMixin(SQLModel):
    """Insertion time, stored timezone-aware in UTC.

    Batch runs read employees in ``created_at`` order so their logs and
    write-back batches are stable between runs.
    """

    created_at: datetime = Field(
        default_factory=_created_now,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )
