"""SQLAlchemy models package: import all models so Base.metadata is populated."""

from app.models.base import BaseModel, TimestampedModel
from app.models.core import Task, User
from app.models.enums import JobOutcome, NotificationKind, TaskPriority, TaskStatus
from app.models.notification_log import NotificationLog

__all__ = [
    "BaseModel",
    "JobOutcome",
    "NotificationKind",
    "NotificationLog",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TimestampedModel",
    "User",
]
