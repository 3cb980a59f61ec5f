"""Base mixins for SQLModel tables."""

from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UUIDMixin(SQLModel):
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
        nullable=False,
    )


class CreatedAtMixin(SQLModel):
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.text("CURRENT_TIMESTAMP")},
        sa_type=sa.DateTime(timezone=True),
    )


class TimestampMixin(CreatedAtMixin):
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.text("CURRENT_TIMESTAMP"), "onupdate": utcnow},
        sa_type=sa.DateTime(timezone=True),
    )
