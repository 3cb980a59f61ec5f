"""
Channel service layer: channel CRUD and channel membership.

Channels are scoped to the caller's organization; a channel id that belongs to
another organization is reported as not found.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.models.channel import InternalChannel, InternalChannelMember
from internal_chat.models.organization import Department
from internal_chat.models.topic import InternalTopic
from internal_chat.models.user import User
from internal_chat.schemas.channels import (
    ChannelCreate,
    ChannelMemberRead,
    ChannelRead,
    ChannelUpdate,
)
from internal_chat.schemas.common import TopicStatus

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_channel_or_404(
    session: AsyncSession, channel_id: uuid.UUID, org_id: Optional[uuid.UUID]
) -> InternalChannel:
    channel = await session.get(InternalChannel, channel_id)
    if not channel or org_id is None or channel.organization_id != org_id:
        raise HTTPException(status_code=404, detail="Channel not found")
    return channel


async def get_user_or_404(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def ensure_users_exist(session: AsyncSession, user_ids: Iterable[uuid.UUID]) -> None:
    """404 unless every id names an existing user."""
    wanted = set(user_ids)
    if not wanted:
        return
    result = await session.execute(select(User.id).where(User.id.in_(wanted)))
    if wanted - set(result.scalars().all()):
        raise HTTPException(status_code=404, detail="User not found")


def _channel_read_stmt():
    member_count = (
        select(func.count(InternalChannelMember.id))
        .where(InternalChannelMember.channel_id == InternalChannel.id)
        .correlate(InternalChannel)
        .scalar_subquery()
    )
    open_topics_count = (
        select(func.count(InternalTopic.id))
        .where(
            InternalTopic.channel_id == InternalChannel.id,
            InternalTopic.status != TopicStatus.CLOSED.value,
        )
        .correlate(InternalChannel)
        .scalar_subquery()
    )
    return (
        select(
            InternalChannel,
            Department.name.label("department_name"),
            User.name.label("created_by_name"),
            member_count.label("member_count"),
            open_topics_count.label("open_topics_count"),
        )
        .outerjoin(Department, Department.id == InternalChannel.department_id)
        .outerjoin(User, User.id == InternalChannel.created_by)
    )


def _to_channel_read(row) -> ChannelRead:
    channel: InternalChannel = row[0]
    return ChannelRead(
        id=channel.id,
        organization_id=channel.organization_id,
        department_id=channel.department_id,
        name=channel.name,
        description=channel.description,
        created_by=channel.created_by,
        created_by_name=row.created_by_name,
        department_name=row.department_name,
        is_archived=channel.is_archived,
        member_count=row.member_count or 0,
        open_topics_count=row.open_topics_count or 0,
        created_at=channel.created_at,
        updated_at=channel.updated_at,
    )


async def read_channel(session: AsyncSession, channel_id: uuid.UUID) -> ChannelRead:
    result = await session.execute(_channel_read_stmt().where(InternalChannel.id == channel_id))
    return _to_channel_read(result.one())


# ---------------------------------------------------------------------------
# Channel CRUD
# ---------------------------------------------------------------------------


async def list_channels(
    session: AsyncSession,
    org_id: uuid.UUID,
    department_id: Optional[uuid.UUID] = None,
) -> list[ChannelRead]:
    """Non-archived channels of an organization, most recently active first."""
    stmt = _channel_read_stmt().where(
        InternalChannel.organization_id == org_id,
        InternalChannel.is_archived.is_(False),
    )
    if department_id:
        stmt = stmt.where(InternalChannel.department_id == department_id)
    stmt = stmt.order_by(InternalChannel.updated_at.desc())

    result = await session.execute(stmt)
    return [_to_channel_read(row) for row in result.all()]


async def create_channel(
    session: AsyncSession,
    req: ChannelCreate,
    org_id: uuid.UUID,
    creator_id: uuid.UUID,
) -> InternalChannel:
    """Create a channel; the creator and every listed user become members."""
    if req.department_id:
        department = await session.get(Department, req.department_id)
        if not department or department.organization_id != org_id:
            raise HTTPException(status_code=404, detail="Department not found")
    member_ids = list(dict.fromkeys([creator_id, *req.member_ids]))
    await ensure_users_exist(session, member_ids)

    channel = InternalChannel(
        organization_id=org_id,
        department_id=req.department_id,
        name=req.name,
        description=req.description,
        created_by=creator_id,
    )
    session.add(channel)
    await session.flush()

    for user_id in member_ids:
        session.add(InternalChannelMember(channel_id=channel.id, user_id=user_id))
    await session.flush()

    log.info("channel.created", channel_id=str(channel.id), org_id=str(org_id), members=len(member_ids))
    return channel


async def update_channel(
    session: AsyncSession, channel: InternalChannel, req: ChannelUpdate
) -> InternalChannel:
    """Apply the fields present in the request; nothing supplied is a 400."""
    fields = {
        key: value
        for key, value in req.model_dump(exclude_unset=True).items()
        if value is not None or key == "description"
    }
    if not fields:
        raise HTTPException(status_code=400, detail="Nothing to update")

    for key, value in fields.items():
        setattr(channel, key, value)
    session.add(channel)
    await session.flush()
    log.info("channel.updated", channel_id=str(channel.id), fields=sorted(fields))
    return channel


async def delete_channel(session: AsyncSession, channel: InternalChannel) -> None:
    await session.delete(channel)
    await session.flush()
    log.info("channel.deleted", channel_id=str(channel.id))


# ---------------------------------------------------------------------------
# Channel members
# ---------------------------------------------------------------------------


async def list_channel_members(
    session: AsyncSession, channel_id: uuid.UUID
) -> list[ChannelMemberRead]:
    result = await session.execute(
        select(InternalChannelMember, User.name, User.email)
        .join(User, User.id == InternalChannelMember.user_id)
        .where(InternalChannelMember.channel_id == channel_id)
        .order_by(User.name)
    )
    return [
        ChannelMemberRead(
            id=member.id,
            channel_id=member.channel_id,
            user_id=member.user_id,
            user_name=name,
            user_email=email,
            joined_at=member.joined_at,
        )
        for member, name, email in result.all()
    ]


async def _is_channel_member(
    session: AsyncSession, channel_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    existing = await session.execute(
        select(InternalChannelMember.id).where(
            InternalChannelMember.channel_id == channel_id,
            InternalChannelMember.user_id == user_id,
        )
    )
    return existing.first() is not None


async def add_channel_member(
    session: AsyncSession, channel_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    """Add a user to a channel. Returns False when they were already a member."""
    await get_user_or_404(session, user_id)
    if await _is_channel_member(session, channel_id, user_id):
        return False

    session.add(InternalChannelMember(channel_id=channel_id, user_id=user_id))
    try:
        await session.flush()
    except IntegrityError:
        # Added by a concurrent request since the check
        await session.rollback()
        return False
    return True


async def remove_channel_member(
    session: AsyncSession, channel_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    await session.execute(
        delete(InternalChannelMember).where(
            InternalChannelMember.channel_id == channel_id,
            InternalChannelMember.user_id == user_id,
        )
    )
