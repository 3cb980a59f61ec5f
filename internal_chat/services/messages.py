"""
Message service layer: topic messages, attachments, unread mentions and
message search.

Features:
- Mention parsing: ``@<user uuid>`` tokens in content are merged with the
  explicit mentions list
- One unread-mention row per mentioned user (never the sender)
- Reading a topic clears the reader's unread mentions for it
"""

from __future__ import annotations

import re
import uuid
from collections import defaultdict
from typing import Iterable, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.models.base import utcnow
from internal_chat.models.channel import InternalChannel
from internal_chat.models.message import (
    InternalMentionUnread,
    InternalMessage,
    InternalMessageAttachment,
)
from internal_chat.models.topic import InternalTopic
from internal_chat.models.user import User
from internal_chat.schemas.messages import (
    AttachmentRead,
    MessageCreate,
    MessageRead,
    SearchResult,
    UnreadMentionRead,
)

log = structlog.get_logger()

# Regex for mention parsing: @<uuid> pattern
MENTION_PATTERN = re.compile(
    r'@([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})', re.IGNORECASE
)

SEARCH_MIN_QUERY_LENGTH = 2
SEARCH_RESULT_LIMIT = 30
UNREAD_MENTIONS_LIMIT = 50


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_mentions_from_content(content: str) -> list[uuid.UUID]:
    """Extract user UUIDs from @mentions in message content."""
    uuids = []
    for match in MENTION_PATTERN.findall(content):
        try:
            uuids.append(uuid.UUID(match))
        except ValueError:
            continue
    return uuids


def merge_mentions(explicit: Iterable[uuid.UUID], content: str) -> list[uuid.UUID]:
    """Explicit mentions first, then parsed ones, without duplicates."""
    return list(dict.fromkeys([*explicit, *parse_mentions_from_content(content)]))


async def _enrich_messages(
    session: AsyncSession, messages: list[InternalMessage]
) -> list[MessageRead]:
    """Attach sender names and attachments to messages (batched)."""
    if not messages:
        return []

    sender_ids = list({m.sender_id for m in messages})
    result = await session.execute(
        select(User.id, User.name, User.email).where(User.id.in_(sender_ids))
    )
    sender_map = {row.id: (row.name, row.email) for row in result.all()}

    result = await session.execute(
        select(InternalMessageAttachment).where(
            InternalMessageAttachment.message_id.in_([m.id for m in messages])
        )
    )
    attachment_map: dict[uuid.UUID, list[AttachmentRead]] = defaultdict(list)
    for att in result.scalars().all():
        attachment_map[att.message_id].append(
            AttachmentRead(
                id=att.id,
                file_url=att.file_url,
                file_name=att.file_name,
                file_size=att.file_size,
                file_type=att.file_type,
            )
        )

    return [
        MessageRead(
            id=m.id,
            topic_id=m.topic_id,
            sender_id=m.sender_id,
            sender_name=sender_map.get(m.sender_id, (None, None))[0],
            sender_email=sender_map.get(m.sender_id, (None, None))[1],
            content=m.content,
            mentions=[uuid.UUID(uid) for uid in m.mentions or []],
            attachments=attachment_map.get(m.id, []),
            created_at=m.created_at,
        )
        for m in messages
    ]


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


async def list_messages(
    session: AsyncSession, topic_id: uuid.UUID, reader_id: uuid.UUID
) -> list[MessageRead]:
    """All messages of a topic, oldest first. Clears the reader's unread mentions there."""
    result = await session.execute(
        select(InternalMessage)
        .where(InternalMessage.topic_id == topic_id)
        .order_by(InternalMessage.created_at.asc())
    )
    messages = list(result.scalars().all())
    enriched = await _enrich_messages(session, messages)

    await session.execute(
        delete(InternalMentionUnread).where(
            InternalMentionUnread.user_id == reader_id,
            InternalMentionUnread.topic_id == topic_id,
        )
    )
    return enriched


async def send_message(
    session: AsyncSession,
    topic: InternalTopic,
    req: MessageCreate,
    sender_id: uuid.UUID,
) -> MessageRead:
    """Persist a message with its attachments and fan out unread mentions."""
    mentions = merge_mentions(req.mentions, req.content)

    message = InternalMessage(
        topic_id=topic.id,
        sender_id=sender_id,
        content=req.content,
        mentions=[str(uid) for uid in mentions],
    )
    session.add(message)
    await session.flush()

    for att in req.attachments:
        session.add(
            InternalMessageAttachment(
                message_id=message.id,
                file_url=att.file_url,
                file_name=att.file_name,
                file_size=att.file_size,
                file_type=att.file_type,
            )
        )

    notified = [uid for uid in mentions if uid != sender_id]
    if notified:
        result = await session.execute(select(User.id).where(User.id.in_(notified)))
        known = set(result.scalars().all())
        notified = [uid for uid in notified if uid in known]
    for user_id in notified:
        session.add(
            InternalMentionUnread(
                user_id=user_id,
                message_id=message.id,
                topic_id=topic.id,
                channel_id=topic.channel_id,
            )
        )

    topic.updated_at = utcnow()
    session.add(topic)
    await session.flush()

    log.info(
        "message.sent",
        message_id=str(message.id),
        topic_id=str(topic.id),
        attachments=len(req.attachments),
        mentions=len(notified),
    )
    enriched = await _enrich_messages(session, [message])
    return enriched[0]


# ---------------------------------------------------------------------------
# Mentions
# ---------------------------------------------------------------------------


async def count_unread_mentions(session: AsyncSession, user_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count(InternalMentionUnread.id)).where(InternalMentionUnread.user_id == user_id)
    )
    return result.scalar() or 0


async def list_unread_mentions(
    session: AsyncSession, user_id: uuid.UUID
) -> list[UnreadMentionRead]:
    """The user's most recent unread mentions with message and location context."""
    result = await session.execute(
        select(
            InternalMentionUnread,
            InternalMessage.content,
            User.name.label("sender_name"),
            InternalTopic.title.label("topic_title"),
            InternalChannel.name.label("channel_name"),
        )
        .join(InternalMessage, InternalMessage.id == InternalMentionUnread.message_id)
        .join(User, User.id == InternalMessage.sender_id)
        .join(InternalTopic, InternalTopic.id == InternalMentionUnread.topic_id)
        .join(InternalChannel, InternalChannel.id == InternalMentionUnread.channel_id)
        .where(InternalMentionUnread.user_id == user_id)
        .order_by(InternalMentionUnread.created_at.desc())
        .limit(UNREAD_MENTIONS_LIMIT)
    )
    return [
        UnreadMentionRead(
            id=row[0].id,
            user_id=row[0].user_id,
            message_id=row[0].message_id,
            topic_id=row[0].topic_id,
            channel_id=row[0].channel_id,
            content=row.content,
            sender_name=row.sender_name,
            topic_title=row.topic_title,
            channel_name=row.channel_name,
            created_at=row[0].created_at,
        )
        for row in result.all()
    ]


async def mark_mention_read(
    session: AsyncSession, mention_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    """Dismiss one unread mention. Other users' mentions are left untouched."""
    await session.execute(
        delete(InternalMentionUnread).where(
            InternalMentionUnread.id == mention_id,
            InternalMentionUnread.user_id == user_id,
        )
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


async def search_messages(
    session: AsyncSession, org_id: uuid.UUID, query: Optional[str]
) -> list[SearchResult]:
    """Newest messages in the organization whose content contains ``query``."""
    if not query or len(query) < SEARCH_MIN_QUERY_LENGTH:
        return []

    result = await session.execute(
        select(
            InternalMessage.id,
            InternalMessage.content,
            InternalMessage.created_at,
            User.name.label("sender_name"),
            InternalTopic.title.label("topic_title"),
            InternalChannel.name.label("channel_name"),
            InternalTopic.id.label("topic_id"),
            InternalChannel.id.label("channel_id"),
        )
        .join(InternalTopic, InternalTopic.id == InternalMessage.topic_id)
        .join(InternalChannel, InternalChannel.id == InternalTopic.channel_id)
        .join(User, User.id == InternalMessage.sender_id)
        .where(
            InternalChannel.organization_id == org_id,
            InternalMessage.content.ilike(f"%{query}%"),
        )
        .order_by(InternalMessage.created_at.desc())
        .limit(SEARCH_RESULT_LIMIT)
    )
    return [SearchResult(**row._mapping) for row in result.all()]
