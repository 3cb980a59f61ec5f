"""Channel and channel-member schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ChannelCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    department_id: Optional[UUID] = None
    member_ids: List[UUID] = Field(default_factory=list)


class ChannelUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_archived: Optional[bool] = None


class ChannelRead(BaseModel):
    id: UUID
    organization_id: UUID
    department_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    created_by: UUID
    created_by_name: Optional[str] = None
    department_name: Optional[str] = None
    is_archived: bool
    member_count: int = 0
    open_topics_count: int = 0
    created_at: datetime
    updated_at: datetime


class MemberAdd(BaseModel):
    user_id: UUID


class ChannelMemberRead(BaseModel):
    id: UUID
    channel_id: UUID
    user_id: UUID
    user_name: str
    user_email: Optional[str] = None
    joined_at: datetime


class OrgMemberRead(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
