"""Topic, topic-member, topic-task and topic-link schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import LinkType, TaskPriority, TopicStatus


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------

class TopicCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)


class TopicUpdate(BaseModel):
    status: Optional[TopicStatus] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    channel_id: Optional[UUID] = None


class TopicRead(BaseModel):
    id: UUID
    channel_id: UUID
    title: str
    status: TopicStatus
    created_by: UUID
    created_by_name: Optional[str] = None
    message_count: int = 0
    last_message_at: Optional[datetime] = None
    closed_by: Optional[UUID] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TopicMemberRead(BaseModel):
    id: UUID
    topic_id: UUID
    user_id: UUID
    user_name: str
    user_email: Optional[str] = None
    added_at: datetime


# ---------------------------------------------------------------------------
# Tasks created from a topic
# ---------------------------------------------------------------------------

class TopicTaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = None
    assigned_to: Optional[UUID] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None


class TopicTaskRead(BaseModel):
    """Compact task row shown in a topic's task panel."""
    id: UUID
    title: str
    status: str
    priority: str
    due_date: Optional[datetime] = None
    assigned_to: Optional[UUID] = None
    assigned_to_name: Optional[str] = None


class CrmTaskRead(BaseModel):
    id: UUID
    organization_id: UUID
    title: str
    description: Optional[str] = None
    assigned_to: Optional[UUID] = None
    created_by: UUID
    priority: str
    due_date: Optional[datetime] = None
    type: str
    status: str
    created_at: datetime


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------

class TopicLinkCreate(BaseModel):
    link_type: LinkType
    link_id: UUID
    link_title: Optional[str] = None


class TopicLinkRead(BaseModel):
    id: UUID
    topic_id: UUID
    link_type: LinkType
    link_id: UUID
    link_title: Optional[str] = None
    created_by: UUID
    created_at: datetime


class LinkableItem(BaseModel):
    id: UUID
    title: str
