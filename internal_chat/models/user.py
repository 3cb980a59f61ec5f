"""User model (owned by the identity service, read here for display names)."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class User(UUIDMixin, SQLModel, table=True):
    __tablename__ = "users"

    name: str = Field(nullable=False, index=True)
    email: Optional[str] = Field(default=None, unique=True, index=True)
