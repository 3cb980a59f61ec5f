"""Topic (conversation thread inside a channel), topic membership and topic links."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, TimestampMixin, UUIDMixin, utcnow


class InternalTopic(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "internal_topics"

    channel_id: uuid.UUID = Field(
        foreign_key="internal_channels.id", ondelete="CASCADE", nullable=False, index=True
    )
    title: str = Field(nullable=False)
    status: str = Field(default="open", nullable=False)  # open | in_progress | closed
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    closed_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    closed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class InternalTopicMember(UUIDMixin, SQLModel, table=True):
    __tablename__ = "internal_topic_members"
    __table_args__ = (
        sa.UniqueConstraint("topic_id", "user_id", name="uq_internal_topic_member"),
    )

    topic_id: uuid.UUID = Field(
        foreign_key="internal_topics.id", ondelete="CASCADE", nullable=False, index=True
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)
    added_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )


class InternalTopicLink(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "internal_topic_links"
    __table_args__ = (
        sa.UniqueConstraint("topic_id", "link_type", "link_id", name="uq_internal_topic_link"),
    )

    topic_id: uuid.UUID = Field(
        foreign_key="internal_topics.id", ondelete="CASCADE", nullable=False, index=True
    )
    link_type: str = Field(nullable=False)  # task | meeting | project | deal
    link_id: uuid.UUID = Field(nullable=False)
    link_title: Optional[str] = None
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
