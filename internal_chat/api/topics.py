"""
Topic endpoints: topics inside channels, topic members, tasks and links.

Topics are conversation threads within a channel. Status columns:
open → in_progress → closed (closing records who closed it and when).
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.core.auth import AuthenticatedUser, get_authenticated_user
from internal_chat.core.database import get_session
from internal_chat.schemas.channels import MemberAdd
from internal_chat.schemas.common import SuccessResponse, TopicStatus
from internal_chat.schemas.topics import (
    CrmTaskRead,
    TopicCreate,
    TopicLinkCreate,
    TopicLinkRead,
    TopicMemberRead,
    TopicRead,
    TopicTaskCreate,
    TopicTaskRead,
    TopicUpdate,
)
from internal_chat.services.channels import get_channel_or_404
from internal_chat.services.organizations import get_user_org
from internal_chat.services.topics import (
    add_topic_member,
    create_topic,
    create_topic_link,
    create_topic_task,
    delete_topic,
    delete_topic_link,
    get_topic_or_404,
    list_topic_links,
    list_topic_members,
    list_topic_tasks,
    list_topics,
    read_topic,
    remove_topic_member,
    update_topic,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Topic CRUD
# ---------------------------------------------------------------------------


@router.get("/channels/{channel_id}/topics", response_model=List[TopicRead])
async def list_topics_endpoint(
    channel_id: uuid.UUID,
    status: Optional[TopicStatus] = None,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """List a channel's topics, optionally filtered by status."""
    org_id = await get_user_org(session, auth.user_id)
    channel = await get_channel_or_404(session, channel_id, org_id)
    return await list_topics(session, channel.id, status)


@router.post("/channels/{channel_id}/topics", response_model=TopicRead, status_code=201)
async def create_topic_endpoint(
    channel_id: uuid.UUID,
    body: TopicCreate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    channel = await get_channel_or_404(session, channel_id, org_id)
    topic = await create_topic(session, channel, body.title, auth.user_id)
    await session.commit()
    return await read_topic(session, topic.id)


@router.patch("/topics/{topic_id}", response_model=TopicRead)
async def update_topic_endpoint(
    topic_id: uuid.UUID,
    body: TopicUpdate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Change a topic's status or title, or move it to another channel."""
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    topic = await update_topic(session, topic, body, org_id, auth.user_id)
    await session.commit()
    return await read_topic(session, topic.id)


@router.delete("/topics/{topic_id}", response_model=SuccessResponse)
async def delete_topic_endpoint(
    topic_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    await delete_topic(session, topic)
    await session.commit()
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Topic members
# ---------------------------------------------------------------------------


@router.get("/topics/{topic_id}/members", response_model=List[TopicMemberRead])
async def list_topic_members_endpoint(
    topic_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    return await list_topic_members(session, topic.id)


@router.post("/topics/{topic_id}/members", response_model=SuccessResponse)
async def add_topic_member_endpoint(
    topic_id: uuid.UUID,
    body: MemberAdd,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    await add_topic_member(session, topic.id, body.user_id)
    await session.commit()
    return SuccessResponse()


@router.delete("/topics/{topic_id}/members/{user_id}", response_model=SuccessResponse)
async def remove_topic_member_endpoint(
    topic_id: uuid.UUID,
    user_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    await remove_topic_member(session, topic.id, user_id)
    await session.commit()
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Topic tasks
# ---------------------------------------------------------------------------


@router.get("/topics/{topic_id}/tasks", response_model=List[TopicTaskRead])
async def list_topic_tasks_endpoint(
    topic_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Tasks linked to a topic."""
    org_id = await get_user_org(session, auth.user_id)
    if not org_id:
        return []
    topic = await get_topic_or_404(session, topic_id, org_id)
    return await list_topic_tasks(session, topic.id)


@router.post("/topics/{topic_id}/tasks", response_model=CrmTaskRead, status_code=201)
async def create_topic_task_endpoint(
    topic_id: uuid.UUID,
    body: TopicTaskCreate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a CRM task from a topic and link it back to the topic."""
    org_id = await get_user_org(session, auth.user_id)
    if not org_id:
        raise HTTPException(status_code=400, detail="No organization")
    topic = await get_topic_or_404(session, topic_id, org_id)
    task = await create_topic_task(session, topic, body, org_id, auth.user_id)
    await session.commit()
    return task


# ---------------------------------------------------------------------------
# Topic links
# ---------------------------------------------------------------------------


@router.get("/topics/{topic_id}/links", response_model=List[TopicLinkRead])
async def list_topic_links_endpoint(
    topic_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    return await list_topic_links(session, topic.id)


@router.post("/topics/{topic_id}/links", response_model=TopicLinkRead, status_code=201)
async def create_topic_link_endpoint(
    topic_id: uuid.UUID,
    body: TopicLinkCreate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Link a task, meeting, project or deal to a topic (409 if already linked)."""
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    link = await create_topic_link(session, topic.id, body, auth.user_id)
    await session.commit()
    return link


@router.delete("/topics/links/{link_id}", response_model=SuccessResponse)
async def delete_topic_link_endpoint(
    link_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    await delete_topic_link(session, link_id, org_id)
    await session.commit()
    return SuccessResponse()
