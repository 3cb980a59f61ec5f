"""Message, attachment, mention and search schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AttachmentIn(BaseModel):
    file_url: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    file_size: Optional[int] = Field(default=None, ge=0)
    file_type: Optional[str] = None


class AttachmentRead(AttachmentIn):
    id: UUID


class MessageCreate(BaseModel):
    content: str = Field(min_length=1)
    mentions: List[UUID] = Field(default_factory=list)
    attachments: List[AttachmentIn] = Field(default_factory=list)


class MessageRead(BaseModel):
    id: UUID
    topic_id: UUID
    sender_id: UUID
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    content: str
    mentions: List[UUID] = Field(default_factory=list)
    attachments: List[AttachmentRead] = Field(default_factory=list)
    created_at: datetime


class UnreadMentionRead(BaseModel):
    id: UUID
    user_id: UUID
    message_id: UUID
    topic_id: UUID
    channel_id: UUID
    content: str
    sender_name: Optional[str] = None
    topic_title: str
    channel_name: str
    created_at: datetime


class SearchResult(BaseModel):
    id: UUID
    content: str
    created_at: datetime
    sender_name: Optional[str] = None
    topic_title: str
    channel_name: str
    topic_id: UUID
    channel_id: UUID
