"""Data access used by the notification engine.

The runners depend on the three store protocols below. ``Sql*Store`` classes
implement them on top of an ``AsyncSession``; tests swap in in-memory fakes.

One session serves a whole scheduler run, so every statement runs inside a
SAVEPOINT: a failed query or insert for one user is rolled back on its own and
the next user still gets a usable session.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Protocol

import structlog
from sqlalchemy import Select, case, func, or_, select
from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.core import Task, User
from app.models.enums import NotificationKind, TaskPriority, TaskStatus
from app.models.notification_log import NotificationLog
from app.modules.notifications.schemas import NotificationLogCreate

logger = structlog.get_logger()

DUE_SOON_TOLERANCE = timedelta(minutes=30)


class TaskStore(Protocol):
    async def find_pending_in_range(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> Sequence[Task]: ...

    async def find_due_soon(self, threshold_hours: int, now: datetime) -> Sequence[Task]: ...

    async def count_created_in_range(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> int: ...

    async def find_completed_in_range(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> Sequence[Task]: ...


class UserStore(Protocol):
    async def find_all(self) -> Sequence[User]: ...

    async def find_by_id(self, user_id: uuid.UUID) -> User | None: ...

    async def find_by_email_or_notification_email(self, value: str) -> Sequence[User]: ...


class NotificationLogStore(Protocol):
    async def create(self, entry: NotificationLogCreate) -> None: ...

    async def exists_since(
        self, user_id: uuid.UUID, kinds: Sequence[NotificationKind], since: datetime
    ) -> bool: ...

    async def urgent_alert_exists(
        self, user_id: uuid.UUID, task_id: uuid.UUID, threshold_hours: int, since: datetime
    ) -> bool: ...


# ── SQLAlchemy implementations ────────────────────────────────────────────────


_PRIORITY_RANK = case(
    (Task.priority == TaskPriority.HIGH, 3),
    (Task.priority == TaskPriority.MEDIUM, 2),
    else_=1,
)


class _SessionStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _execute(self, stmt: Select) -> Result:
        async with self.db.begin_nested():
            return await self.db.execute(stmt)


class SqlTaskStore(_SessionStore):
    async def find_pending_in_range(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> list[Task]:
        """Pending tasks due in [start, end], soonest first, then highest priority."""
        stmt = (
            select(Task)
            .where(
                Task.user_id == user_id,
                Task.status == TaskStatus.PENDING,
                Task.due_date >= start,
                Task.due_date <= end,
            )
            .order_by(Task.due_date.asc(), _PRIORITY_RANK.desc())
        )
        result = await self._execute(stmt)
        return list(result.scalars().all())

    async def find_due_soon(self, threshold_hours: int, now: datetime) -> list[Task]:
        """Pending tasks due within ±30 minutes of now + threshold."""
        target = now + timedelta(hours=threshold_hours)
        stmt = select(Task).where(
            Task.status == TaskStatus.PENDING,
            Task.due_date >= target - DUE_SOON_TOLERANCE,
            Task.due_date <= target + DUE_SOON_TOLERANCE,
        )
        result = await self._execute(stmt)
        return list(result.scalars().all())

    async def count_created_in_range(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> int:
        stmt = select(func.count(Task.id)).where(
            Task.user_id == user_id,
            Task.created_at >= start,
            Task.created_at < end,
        )
        result = await self._execute(stmt)
        return result.scalar() or 0

    async def find_completed_in_range(
        self, user_id: uuid.UUID, start: datetime, end: datetime
    ) -> list[Task]:
        # updated_at of a completed task is its completion instant
        stmt = (
            select(Task)
            .where(
                Task.user_id == user_id,
                Task.status == TaskStatus.COMPLETED,
                Task.updated_at >= start,
                Task.updated_at < end,
            )
            .order_by(Task.updated_at.asc())
        )
        result = await self._execute(stmt)
        return list(result.scalars().all())


class SqlUserStore(_SessionStore):
    async def find_all(self) -> list[User]:
        result = await self._execute(select(User).order_by(User.created_at.asc()))
        return list(result.scalars().all())

    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        result = await self._execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def find_by_email_or_notification_email(self, value: str) -> list[User]:
        needle = value.strip().lower()
        stmt = select(User).where(
            or_(
                func.lower(User.email) == needle,
                func.lower(User.notification_email) == needle,
            )
        )
        result = await self._execute(stmt)
        return list(result.scalars().all())


class SqlNotificationLogStore(_SessionStore):
    async def create(self, entry: NotificationLogCreate) -> None:
        async with self.db.begin_nested():
            self.db.add(
                NotificationLog(
                    user_id=entry.user_id,
                    type=entry.type,
                    title=entry.title,
                    message=entry.message,
                    payload=entry.payload.model_dump(mode="json", by_alias=True),
                )
            )
        # Committed per entry so a later user's failure cannot roll it back
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.error("notification_log_commit_failed", user_id=str(entry.user_id))
            raise

    async def exists_since(
        self, user_id: uuid.UUID, kinds: Sequence[NotificationKind], since: datetime
    ) -> bool:
        stmt = (
            select(NotificationLog.id)
            .where(
                NotificationLog.user_id == user_id,
                NotificationLog.type.in_(list(kinds)),
                NotificationLog.created_at >= since,
            )
            .limit(1)
        )
        result = await self._execute(stmt)
        return result.scalar_one_or_none() is not None

    async def urgent_alert_exists(
        self, user_id: uuid.UUID, task_id: uuid.UUID, threshold_hours: int, since: datetime
    ) -> bool:
        stmt = (
            select(NotificationLog.id)
            .where(
                NotificationLog.user_id == user_id,
                NotificationLog.type == NotificationKind.URGENT_ALERT,
                NotificationLog.created_at >= since,
                NotificationLog.payload["taskId"].astext == str(task_id),
                NotificationLog.payload["thresholdHours"].as_integer() == threshold_hours,
            )
            .limit(1)
        )
        result = await self._execute(stmt)
        return result.scalar_one_or_none() is not None
