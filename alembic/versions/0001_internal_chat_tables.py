"""Add internal chat tables

Revision ID: 0001_internal_chat
Revises:
Create Date: 2026-10-17 09:00:00.000000

users, organizations, organization_members, departments and the linkable
CRM tables are owned by other modules and must already exist.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_internal_chat'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid(name: str, *fk: sa.ForeignKey, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *fk, nullable=nullable)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=None if nullable else sa.text('CURRENT_TIMESTAMP'),
        nullable=nullable,
    )


def upgrade() -> None:
    # Channels
    op.create_table('internal_channels',
        _uuid('id'),
        _uuid('organization_id', sa.ForeignKey('organizations.id', ondelete='CASCADE')),
        _uuid('department_id', sa.ForeignKey('departments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        _uuid('created_by', sa.ForeignKey('users.id')),
        sa.Column('is_archived', sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_internal_channels_id'), 'internal_channels', ['id'])
    op.create_index(op.f('ix_internal_channels_organization_id'), 'internal_channels', ['organization_id'])
    op.create_index(op.f('ix_internal_channels_department_id'), 'internal_channels', ['department_id'])

    op.create_table('internal_channel_members',
        _uuid('id'),
        _uuid('channel_id', sa.ForeignKey('internal_channels.id', ondelete='CASCADE')),
        _uuid('user_id', sa.ForeignKey('users.id', ondelete='CASCADE')),
        _timestamp('joined_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('channel_id', 'user_id', name='uq_internal_channel_member'),
    )
    op.create_index(op.f('ix_internal_channel_members_id'), 'internal_channel_members', ['id'])
    op.create_index(op.f('ix_internal_channel_members_channel_id'), 'internal_channel_members', ['channel_id'])
    op.create_index(op.f('ix_internal_channel_members_user_id'), 'internal_channel_members', ['user_id'])

    # Topics
    op.create_table('internal_topics',
        _uuid('id'),
        _uuid('channel_id', sa.ForeignKey('internal_channels.id', ondelete='CASCADE')),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('status', sa.String(), server_default='open', nullable=False),
        _uuid('created_by', sa.ForeignKey('users.id')),
        _uuid('closed_by', sa.ForeignKey('users.id'), nullable=True),
        _timestamp('closed_at', nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_internal_topics_id'), 'internal_topics', ['id'])
    op.create_index(op.f('ix_internal_topics_channel_id'), 'internal_topics', ['channel_id'])

    op.create_table('internal_topic_members',
        _uuid('id'),
        _uuid('topic_id', sa.ForeignKey('internal_topics.id', ondelete='CASCADE')),
        _uuid('user_id', sa.ForeignKey('users.id', ondelete='CASCADE')),
        _timestamp('added_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('topic_id', 'user_id', name='uq_internal_topic_member'),
    )
    op.create_index(op.f('ix_internal_topic_members_id'), 'internal_topic_members', ['id'])
    op.create_index(op.f('ix_internal_topic_members_topic_id'), 'internal_topic_members', ['topic_id'])
    op.create_index(op.f('ix_internal_topic_members_user_id'), 'internal_topic_members', ['user_id'])

    op.create_table('internal_topic_links',
        _uuid('id'),
        _uuid('topic_id', sa.ForeignKey('internal_topics.id', ondelete='CASCADE')),
        sa.Column('link_type', sa.String(), nullable=False),
        _uuid('link_id'),
        sa.Column('link_title', sa.String(), nullable=True),
        _uuid('created_by', sa.ForeignKey('users.id')),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('topic_id', 'link_type', 'link_id', name='uq_internal_topic_link'),
    )
    op.create_index(op.f('ix_internal_topic_links_id'), 'internal_topic_links', ['id'])
    op.create_index(op.f('ix_internal_topic_links_topic_id'), 'internal_topic_links', ['topic_id'])

    # Messages
    op.create_table('internal_messages',
        _uuid('id'),
        _uuid('topic_id', sa.ForeignKey('internal_topics.id', ondelete='CASCADE')),
        _uuid('sender_id', sa.ForeignKey('users.id')),
        sa.Column('content', sa.String(), nullable=False),
        sa.Column('mentions', sa.JSON(), server_default='[]', nullable=False),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_internal_messages_id'), 'internal_messages', ['id'])
    op.create_index(op.f('ix_internal_messages_topic_id'), 'internal_messages', ['topic_id'])
    op.create_index(op.f('ix_internal_messages_sender_id'), 'internal_messages', ['sender_id'])

    op.create_table('internal_message_attachments',
        _uuid('id'),
        _uuid('message_id', sa.ForeignKey('internal_messages.id', ondelete='CASCADE')),
        sa.Column('file_url', sa.String(), nullable=False),
        sa.Column('file_name', sa.String(), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('file_type', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_internal_message_attachments_id'), 'internal_message_attachments', ['id'])
    op.create_index(
        op.f('ix_internal_message_attachments_message_id'), 'internal_message_attachments', ['message_id']
    )

    op.create_table('internal_mentions_unread',
        _uuid('id'),
        _uuid('user_id', sa.ForeignKey('users.id', ondelete='CASCADE')),
        _uuid('message_id', sa.ForeignKey('internal_messages.id', ondelete='CASCADE')),
        _uuid('topic_id', sa.ForeignKey('internal_topics.id', ondelete='CASCADE')),
        _uuid('channel_id', sa.ForeignKey('internal_channels.id', ondelete='CASCADE')),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'message_id', name='uq_internal_mention_unread'),
    )
    op.create_index(op.f('ix_internal_mentions_unread_id'), 'internal_mentions_unread', ['id'])
    op.create_index(op.f('ix_internal_mentions_unread_user_id'), 'internal_mentions_unread', ['user_id'])
    op.create_index(op.f('ix_internal_mentions_unread_topic_id'), 'internal_mentions_unread', ['topic_id'])


def downgrade() -> None:
    op.drop_table('internal_mentions_unread')
    op.drop_table('internal_message_attachments')
    op.drop_table('internal_messages')
    op.drop_table('internal_topic_links')
    op.drop_table('internal_topic_members')
    op.drop_table('internal_topics')
    op.drop_table('internal_channel_members')
    op.drop_table('internal_channels')
