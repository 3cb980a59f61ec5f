"""Linkable records owned by the CRM and planning modules (tasks, meetings, projects, deals)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class CrmTask(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "crm_tasks"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    assigned_to: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    priority: str = Field(default="medium", nullable=False)  # low | medium | high | urgent
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    type: str = Field(default="task", nullable=False)
    status: str = Field(default="pending", nullable=False)


class Meeting(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "meetings"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    meeting_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class Project(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "projects"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    title: str = Field(nullable=False)


class Deal(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "deals"

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    title: str = Field(nullable=False)
