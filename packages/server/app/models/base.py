"""Shared column helpers and mixins for the SQLModel tables."""

from datetime import datetime, timezone
from typing import Any
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_field(**kwargs: Any) -> Any:
    """Timezone-aware timestamp defaulting to the current UTC time."""
    return Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
        **kwargs,
    )


def json_list_field() -> Any:
    """A JSON array of strings. Mutate by reassigning, never in place."""
    return Field(default_factory=list, sa_column=sa.Column(sa.JSON, nullable=False))


class TimestampMixin(SQLModel):
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field(sa_column_kwargs={"onupdate": utcnow})


class UUIDMixin(SQLModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
