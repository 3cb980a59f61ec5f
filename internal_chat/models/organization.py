"""Organization, membership and department models (externally owned, read-only here)."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Organization(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)


class OrganizationMember(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "organization_members"

    organization_id: uuid.UUID = Field(
        foreign_key="organizations.id", ondelete="CASCADE", nullable=False, index=True
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", nullable=False, index=True)
    role: Optional[str] = None


class Department(UUIDMixin, SQLModel, table=True):
    __tablename__ = "departments"

    organization_id: uuid.UUID = Field(
        foreign_key="organizations.id", ondelete="CASCADE", nullable=False, index=True
    )
    name: str = Field(nullable=False)
