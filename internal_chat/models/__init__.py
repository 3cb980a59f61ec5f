# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import CreatedAtMixin, TimestampMixin, UUIDMixin  # noqa: F401
from .user import User  # noqa: F401
from .organization import Department, Organization, OrganizationMember  # noqa: F401
from .channel import InternalChannel, InternalChannelMember  # noqa: F401
from .topic import InternalTopic, InternalTopicLink, InternalTopicMember  # noqa: F401
from .message import InternalMentionUnread, InternalMessage, InternalMessageAttachment  # noqa: F401
from .crm import CrmTask, Deal, Meeting, Project  # noqa: F401
