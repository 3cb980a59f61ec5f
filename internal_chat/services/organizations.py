"""
Organization membership lookups.

Membership rows are owned by the organization module; this service only reads
them to resolve which organization scopes a caller's chat data.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.models.organization import OrganizationMember
from internal_chat.models.user import User
from internal_chat.schemas.channels import OrgMemberRead


async def get_user_org(session: AsyncSession, user_id: uuid.UUID) -> Optional[uuid.UUID]:
    """Return the organization the user belongs to, or None when they have no membership.

    Issues a single read against ``organization_members``. A user with several
    memberships gets whichever row the database returns first. Database errors
    propagate to the caller.
    """
    result = await session.execute(
        select(OrganizationMember.organization_id)
        .where(OrganizationMember.user_id == user_id)
        .limit(1)
    )
    return result.scalars().first()


async def list_org_members(session: AsyncSession, org_id: uuid.UUID) -> list[OrgMemberRead]:
    """Users belonging to an organization, ordered by name."""
    result = await session.execute(
        select(User.id, User.name, User.email)
        .join(OrganizationMember, OrganizationMember.user_id == User.id)
        .where(OrganizationMember.organization_id == org_id)
        .order_by(User.name)
    )
    return [OrgMemberRead(id=row.id, name=row.name, email=row.email) for row in result.all()]
