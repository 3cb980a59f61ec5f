from enum import Enum

from pydantic import BaseModel


class TopicStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class LinkType(str, Enum):
    TASK = "task"
    MEETING = "meeting"
    PROJECT = "project"
    DEAL = "deal"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class SuccessResponse(BaseModel):
    success: bool = True


class CountResponse(BaseModel):
    count: int
