"""
Channel endpoints: CRUD and membership.

- GET /: channels of the caller's organization (optionally one department)
- POST /: create a channel; creator and listed users become members
- PATCH /{channel_id}, DELETE /{channel_id}
- GET|POST /{channel_id}/members, DELETE /{channel_id}/members/{user_id}
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.core.auth import AuthenticatedUser, get_authenticated_user
from internal_chat.core.database import get_session
from internal_chat.schemas.channels import (
    ChannelCreate,
    ChannelMemberRead,
    ChannelRead,
    ChannelUpdate,
    MemberAdd,
)
from internal_chat.schemas.common import SuccessResponse
from internal_chat.services.channels import (
    add_channel_member,
    create_channel,
    delete_channel,
    get_channel_or_404,
    list_channel_members,
    list_channels,
    read_channel,
    remove_channel_member,
    update_channel,
)
from internal_chat.services.organizations import get_user_org

router = APIRouter()


@router.get("", response_model=List[ChannelRead])
async def list_channels_endpoint(
    department_id: Optional[uuid.UUID] = None,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """List non-archived channels, most recently active first."""
    org_id = await get_user_org(session, auth.user_id)
    if not org_id:
        return []
    return await list_channels(session, org_id, department_id)


@router.post("", response_model=ChannelRead, status_code=201)
async def create_channel_endpoint(
    body: ChannelCreate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    if not org_id:
        raise HTTPException(status_code=400, detail="No organization")

    channel = await create_channel(session, body, org_id, auth.user_id)
    await session.commit()
    return await read_channel(session, channel.id)


@router.patch("/{channel_id}", response_model=ChannelRead)
async def update_channel_endpoint(
    channel_id: uuid.UUID,
    body: ChannelUpdate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Rename, describe or (un)archive a channel."""
    org_id = await get_user_org(session, auth.user_id)
    channel = await get_channel_or_404(session, channel_id, org_id)
    channel = await update_channel(session, channel, body)
    await session.commit()
    return await read_channel(session, channel.id)


@router.delete("/{channel_id}", response_model=SuccessResponse)
async def delete_channel_endpoint(
    channel_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    channel = await get_channel_or_404(session, channel_id, org_id)
    await delete_channel(session, channel)
    await session.commit()
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.get("/{channel_id}/members", response_model=List[ChannelMemberRead])
async def list_channel_members_endpoint(
    channel_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    channel = await get_channel_or_404(session, channel_id, org_id)
    return await list_channel_members(session, channel.id)


@router.post("/{channel_id}/members", response_model=SuccessResponse)
async def add_channel_member_endpoint(
    channel_id: uuid.UUID,
    body: MemberAdd,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Add a member. Adding an existing member is a no-op."""
    org_id = await get_user_org(session, auth.user_id)
    channel = await get_channel_or_404(session, channel_id, org_id)
    await add_channel_member(session, channel.id, body.user_id)
    await session.commit()
    return SuccessResponse()


@router.delete("/{channel_id}/members/{user_id}", response_model=SuccessResponse)
async def remove_channel_member_endpoint(
    channel_id: uuid.UUID,
    user_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    channel = await get_channel_or_404(session, channel_id, org_id)
    await remove_channel_member(session, channel.id, user_id)
    await session.commit()
    return SuccessResponse()
