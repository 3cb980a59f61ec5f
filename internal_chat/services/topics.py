"""
Topic service layer: topics inside channels, topic membership, tasks created
from a topic, and links from a topic to tasks, meetings, projects and deals.

Handles:
- Topic CRUD with close/reopen bookkeeping (closed_by / closed_at)
- Moving topics between channels of the same organization
- Creating CRM tasks from a topic and linking them back
- Searching linkable records by title
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.models.base import utcnow
from internal_chat.models.channel import InternalChannel
from internal_chat.models.crm import CrmTask, Deal, Meeting, Project
from internal_chat.models.message import InternalMessage
from internal_chat.models.topic import InternalTopic, InternalTopicLink, InternalTopicMember
from internal_chat.models.user import User
from internal_chat.schemas.common import LinkType, TopicStatus
from internal_chat.schemas.topics import (
    CrmTaskRead,
    LinkableItem,
    TopicLinkCreate,
    TopicLinkRead,
    TopicMemberRead,
    TopicRead,
    TopicTaskCreate,
    TopicTaskRead,
    TopicUpdate,
)
from internal_chat.services.channels import get_channel_or_404, get_user_or_404

log = structlog.get_logger()

LINKABLE_SEARCH_LIMIT = 20

# Linkable record model and its "most recent first" column, per link type.
LINKABLE_SOURCES = {
    LinkType.TASK: (CrmTask, CrmTask.created_at),
    LinkType.MEETING: (Meeting, Meeting.meeting_date),
    LinkType.PROJECT: (Project, Project.created_at),
    LinkType.DEAL: (Deal, Deal.created_at),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_topic_or_404(
    session: AsyncSession, topic_id: uuid.UUID, org_id: Optional[uuid.UUID]
) -> InternalTopic:
    """Resolve a topic whose channel belongs to the organization."""
    if org_id is None:
        raise HTTPException(status_code=404, detail="Topic not found")
    result = await session.execute(
        select(InternalTopic)
        .join(InternalChannel, InternalChannel.id == InternalTopic.channel_id)
        .where(InternalTopic.id == topic_id, InternalChannel.organization_id == org_id)
    )
    topic = result.scalar_one_or_none()
    if not topic:
        raise HTTPException(status_code=404, detail="Topic not found")
    return topic


def _topic_read_stmt():
    message_count = (
        select(func.count(InternalMessage.id))
        .where(InternalMessage.topic_id == InternalTopic.id)
        .correlate(InternalTopic)
        .scalar_subquery()
    )
    last_message_at = (
        select(func.max(InternalMessage.created_at))
        .where(InternalMessage.topic_id == InternalTopic.id)
        .correlate(InternalTopic)
        .scalar_subquery()
    )
    return select(
        InternalTopic,
        User.name.label("created_by_name"),
        message_count.label("message_count"),
        last_message_at.label("last_message_at"),
    ).outerjoin(User, User.id == InternalTopic.created_by)


def _to_topic_read(row) -> TopicRead:
    topic: InternalTopic = row[0]
    return TopicRead(
        id=topic.id,
        channel_id=topic.channel_id,
        title=topic.title,
        status=topic.status,
        created_by=topic.created_by,
        created_by_name=row.created_by_name,
        message_count=row.message_count or 0,
        last_message_at=row.last_message_at,
        closed_by=topic.closed_by,
        closed_at=topic.closed_at,
        created_at=topic.created_at,
        updated_at=topic.updated_at,
    )


async def read_topic(session: AsyncSession, topic_id: uuid.UUID) -> TopicRead:
    result = await session.execute(_topic_read_stmt().where(InternalTopic.id == topic_id))
    return _to_topic_read(result.one())


# ---------------------------------------------------------------------------
# Topic CRUD
# ---------------------------------------------------------------------------


async def list_topics(
    session: AsyncSession,
    channel_id: uuid.UUID,
    status: Optional[TopicStatus] = None,
) -> list[TopicRead]:
    stmt = _topic_read_stmt().where(InternalTopic.channel_id == channel_id)
    if status:
        stmt = stmt.where(InternalTopic.status == status.value)
    stmt = stmt.order_by(InternalTopic.updated_at.desc())

    result = await session.execute(stmt)
    return [_to_topic_read(row) for row in result.all()]


async def create_topic(
    session: AsyncSession,
    channel: InternalChannel,
    title: str,
    creator_id: uuid.UUID,
) -> InternalTopic:
    """Open a new topic and mark the channel as recently active."""
    topic = InternalTopic(channel_id=channel.id, title=title, created_by=creator_id)
    session.add(topic)
    channel.updated_at = utcnow()
    session.add(channel)
    await session.flush()
    log.info("topic.created", topic_id=str(topic.id), channel_id=str(channel.id))
    return topic


async def update_topic(
    session: AsyncSession,
    topic: InternalTopic,
    req: TopicUpdate,
    org_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> InternalTopic:
    """Retitle, move or change the status of a topic.

    Closing records who closed it and when; any other status clears both.
    """
    fields = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
    if not fields:
        raise HTTPException(status_code=400, detail="Nothing to update")

    if "title" in fields:
        topic.title = fields["title"]
    if "channel_id" in fields:
        target = await get_channel_or_404(session, fields["channel_id"], org_id)
        topic.channel_id = target.id
    if "status" in fields:
        status = TopicStatus(fields["status"])
        topic.status = status.value
        if status is TopicStatus.CLOSED:
            topic.closed_by = actor_id
            topic.closed_at = utcnow()
        else:
            topic.closed_by = None
            topic.closed_at = None

    session.add(topic)
    await session.flush()
    log.info("topic.updated", topic_id=str(topic.id), fields=sorted(fields))
    return topic


async def delete_topic(session: AsyncSession, topic: InternalTopic) -> None:
    await session.delete(topic)
    await session.flush()
    log.info("topic.deleted", topic_id=str(topic.id))


# ---------------------------------------------------------------------------
# Topic members
# ---------------------------------------------------------------------------


async def list_topic_members(session: AsyncSession, topic_id: uuid.UUID) -> list[TopicMemberRead]:
    result = await session.execute(
        select(InternalTopicMember, User.name, User.email)
        .join(User, User.id == InternalTopicMember.user_id)
        .where(InternalTopicMember.topic_id == topic_id)
        .order_by(User.name)
    )
    return [
        TopicMemberRead(
            id=member.id,
            topic_id=member.topic_id,
            user_id=member.user_id,
            user_name=name,
            user_email=email,
            added_at=member.added_at,
        )
        for member, name, email in result.all()
    ]


async def _is_topic_member(session: AsyncSession, topic_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    existing = await session.execute(
        select(InternalTopicMember.id).where(
            InternalTopicMember.topic_id == topic_id,
            InternalTopicMember.user_id == user_id,
        )
    )
    return existing.first() is not None


async def add_topic_member(session: AsyncSession, topic_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    """Add a user to a topic. Returns False when they were already a member."""
    await get_user_or_404(session, user_id)
    if await _is_topic_member(session, topic_id, user_id):
        return False

    session.add(InternalTopicMember(topic_id=topic_id, user_id=user_id))
    try:
        await session.flush()
    except IntegrityError:
        # Added by a concurrent request since the check
        await session.rollback()
        return False
    return True


async def remove_topic_member(session: AsyncSession, topic_id: uuid.UUID, user_id: uuid.UUID) -> None:
    await session.execute(
        delete(InternalTopicMember).where(
            InternalTopicMember.topic_id == topic_id,
            InternalTopicMember.user_id == user_id,
        )
    )


# ---------------------------------------------------------------------------
# Topic tasks
# ---------------------------------------------------------------------------


async def list_topic_tasks(session: AsyncSession, topic_id: uuid.UUID) -> list[TopicTaskRead]:
    """CRM tasks linked to a topic, newest first."""
    result = await session.execute(
        select(CrmTask, User.name.label("assigned_to_name"))
        .join(InternalTopicLink, InternalTopicLink.link_id == CrmTask.id)
        .outerjoin(User, User.id == CrmTask.assigned_to)
        .where(
            InternalTopicLink.topic_id == topic_id,
            InternalTopicLink.link_type == LinkType.TASK.value,
        )
        .order_by(CrmTask.created_at.desc())
    )
    return [
        TopicTaskRead(
            id=task.id,
            title=task.title,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            assigned_to=task.assigned_to,
            assigned_to_name=assigned_to_name,
        )
        for task, assigned_to_name in result.all()
    ]


async def create_topic_task(
    session: AsyncSession,
    topic: InternalTopic,
    req: TopicTaskCreate,
    org_id: uuid.UUID,
    creator_id: uuid.UUID,
) -> CrmTaskRead:
    """Create a pending CRM task and link it to the topic."""
    if req.assigned_to:
        await get_user_or_404(session, req.assigned_to)

    task = CrmTask(
        organization_id=org_id,
        title=req.title,
        description=req.description,
        assigned_to=req.assigned_to or creator_id,
        created_by=creator_id,
        priority=req.priority.value,
        due_date=req.due_date,
        type="task",
        status="pending",
    )
    session.add(task)
    await session.flush()

    session.add(
        InternalTopicLink(
            topic_id=topic.id,
            link_type=LinkType.TASK.value,
            link_id=task.id,
            link_title=req.title,
            created_by=creator_id,
        )
    )
    await session.flush()
    log.info("topic.task_created", topic_id=str(topic.id), task_id=str(task.id))

    return CrmTaskRead(
        id=task.id,
        organization_id=task.organization_id,
        title=task.title,
        description=task.description,
        assigned_to=task.assigned_to,
        created_by=task.created_by,
        priority=task.priority,
        due_date=task.due_date,
        type=task.type,
        status=task.status,
        created_at=task.created_at,
    )


# ---------------------------------------------------------------------------
# Topic links
# ---------------------------------------------------------------------------


def _to_link_read(link: InternalTopicLink) -> TopicLinkRead:
    return TopicLinkRead(
        id=link.id,
        topic_id=link.topic_id,
        link_type=link.link_type,
        link_id=link.link_id,
        link_title=link.link_title,
        created_by=link.created_by,
        created_at=link.created_at,
    )


async def list_topic_links(session: AsyncSession, topic_id: uuid.UUID) -> list[TopicLinkRead]:
    result = await session.execute(
        select(InternalTopicLink)
        .where(InternalTopicLink.topic_id == topic_id)
        .order_by(InternalTopicLink.created_at.desc())
    )
    return [_to_link_read(link) for link in result.scalars().all()]


async def create_topic_link(
    session: AsyncSession,
    topic_id: uuid.UUID,
    req: TopicLinkCreate,
    creator_id: uuid.UUID,
) -> TopicLinkRead:
    """Link a record to a topic. The same record can only be linked once."""
    existing = await session.execute(
        select(InternalTopicLink.id).where(
            InternalTopicLink.topic_id == topic_id,
            InternalTopicLink.link_type == req.link_type.value,
            InternalTopicLink.link_id == req.link_id,
        )
    )
    if existing.first():
        raise HTTPException(status_code=409, detail="Link already exists")

    link = InternalTopicLink(
        topic_id=topic_id,
        link_type=req.link_type.value,
        link_id=req.link_id,
        link_title=req.link_title,
        created_by=creator_id,
    )
    session.add(link)
    try:
        await session.flush()
    except IntegrityError:
        # Concurrent insert of the same link
        await session.rollback()
        raise HTTPException(status_code=409, detail="Link already exists")
    return _to_link_read(link)


async def delete_topic_link(
    session: AsyncSession, link_id: uuid.UUID, org_id: Optional[uuid.UUID]
) -> None:
    """Remove a link, provided its topic belongs to the organization."""
    link = await session.get(InternalTopicLink, link_id)
    if not link:
        raise HTTPException(status_code=404, detail="Link not found")
    await get_topic_or_404(session, link.topic_id, org_id)
    await session.delete(link)
    await session.flush()


async def search_linkable(
    session: AsyncSession,
    org_id: uuid.UUID,
    link_type: LinkType,
    query: str = "",
) -> list[LinkableItem]:
    """Records of one linkable kind in the organization whose title contains ``query``."""
    model, recency = LINKABLE_SOURCES[link_type]
    result = await session.execute(
        select(model.id, model.title)
        .where(model.organization_id == org_id, model.title.ilike(f"%{query}%"))
        .order_by(recency.desc())
        .limit(LINKABLE_SEARCH_LIMIT)
    )
    return [LinkableItem(id=row.id, title=row.title) for row in result.all()]
