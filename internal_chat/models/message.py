"""Message, attachment and unread-mention models."""

from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class InternalMessage(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "internal_messages"

    topic_id: uuid.UUID = Field(
        foreign_key="internal_topics.id", ondelete="CASCADE", nullable=False, index=True
    )
    sender_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    content: str = Field(nullable=False)
    # Mentioned user ids as strings
    mentions: List[str] = Field(
        default_factory=list,
        sa_column=sa.Column(sa.JSON, nullable=False, server_default="[]"),
    )


class InternalMessageAttachment(UUIDMixin, SQLModel, table=True):
    __tablename__ = "internal_message_attachments"

    message_id: uuid.UUID = Field(
        foreign_key="internal_messages.id", ondelete="CASCADE", nullable=False, index=True
    )
    file_url: str = Field(nullable=False)
    file_name: str = Field(nullable=False)
    file_size: Optional[int] = None
    file_type: Optional[str] = None


class InternalMentionUnread(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "internal_mentions_unread"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "message_id", name="uq_internal_mention_unread"),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)
    message_id: uuid.UUID = Field(
        foreign_key="internal_messages.id", ondelete="CASCADE", nullable=False
    )
    topic_id: uuid.UUID = Field(
        foreign_key="internal_topics.id", ondelete="CASCADE", nullable=False, index=True
    )
    channel_id: uuid.UUID = Field(
        foreign_key="internal_channels.id", ondelete="CASCADE", nullable=False
    )
