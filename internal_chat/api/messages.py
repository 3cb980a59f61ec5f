"""
Message and mention endpoints.

- GET /topics/{topic_id}/messages: history, oldest first (marks mentions read)
- POST /topics/{topic_id}/messages: post a message with mentions and attachments
- GET /mentions/unread-count, GET /mentions/unread, POST /mentions/{mention_id}/read
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.core.auth import AuthenticatedUser, get_authenticated_user
from internal_chat.core.database import get_session
from internal_chat.schemas.common import CountResponse, SuccessResponse
from internal_chat.schemas.messages import MessageCreate, MessageRead, UnreadMentionRead
from internal_chat.services.messages import (
    count_unread_mentions,
    list_messages,
    list_unread_mentions,
    mark_mention_read,
    send_message,
)
from internal_chat.services.organizations import get_user_org
from internal_chat.services.topics import get_topic_or_404

router = APIRouter()


@router.get("/topics/{topic_id}/messages", response_model=List[MessageRead])
async def list_messages_endpoint(
    topic_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    messages = await list_messages(session, topic.id, auth.user_id)
    await session.commit()
    return messages


@router.post("/topics/{topic_id}/messages", response_model=MessageRead, status_code=201)
async def send_message_endpoint(
    topic_id: uuid.UUID,
    body: MessageCreate,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    """Post a message. Mentioned users (other than the sender) get an unread mention."""
    org_id = await get_user_org(session, auth.user_id)
    topic = await get_topic_or_404(session, topic_id, org_id)
    message = await send_message(session, topic, body, auth.user_id)
    await session.commit()
    return message


# ---------------------------------------------------------------------------
# Mentions
# ---------------------------------------------------------------------------


@router.get("/mentions/unread-count", response_model=CountResponse)
async def unread_mention_count_endpoint(
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    return CountResponse(count=await count_unread_mentions(session, auth.user_id))


@router.get("/mentions/unread", response_model=List[UnreadMentionRead])
async def unread_mentions_endpoint(
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    return await list_unread_mentions(session, auth.user_id)


@router.post("/mentions/{mention_id}/read", response_model=SuccessResponse)
async def mark_mention_read_endpoint(
    mention_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    session: AsyncSession = Depends(get_session),
):
    await mark_mention_read(session, mention_id, auth.user_id)
    await session.commit()
    return SuccessResponse()
