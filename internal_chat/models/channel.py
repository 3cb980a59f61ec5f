"""Internal chat channel and channel membership models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class InternalChannel(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "internal_channels"

    organization_id: uuid.UUID = Field(
        foreign_key="organizations.id", ondelete="CASCADE", nullable=False, index=True
    )
    department_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="departments.id", ondelete="SET NULL", index=True
    )
    name: str = Field(nullable=False)
    description: Optional[str] = None
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    is_archived: bool = Field(
        default=False, nullable=False, sa_column_kwargs={"server_default": sa.false()}
    )


class InternalChannelMember(UUIDMixin, SQLModel, table=True):
    __tablename__ = "internal_channel_members"
    __table_args__ = (
        sa.UniqueConstraint("channel_id", "user_id", name="uq_internal_channel_member"),
    )

    channel_id: uuid.UUID = Field(
        foreign_key="internal_channels.id", ondelete="CASCADE", nullable=False, index=True
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)
    joined_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
