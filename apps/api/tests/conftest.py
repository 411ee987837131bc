"""Shared test fixtures for the TaskStudy notification engine.

The engine depends only on the store protocols in
``app.modules.notifications.repository`` and on the channel ``send``
interfaces, so most tests run against the in-memory fakes below. The SQL
stores are tested on the ``db`` fixture, which needs a reachable PostgreSQL
at ``DATABASE_URL`` and is skipped otherwise.
"""

import uuid
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import settings
from app.core.database import Base
from app.models.core import Task, User
from app.models.enums import NotificationKind, TaskPriority, TaskStatus
from app.modules.notifications.channels import ChannelAvailability, NotificationChannels
from app.modules.notifications.digest import PRIORITY_SCORES
from app.modules.notifications.repository import DUE_SOON_TOLERANCE
from app.modules.notifications.schemas import NotificationLogCreate
from app.modules.notifications.scheduler import NotificationScheduler

# Wednesday 15 Oct 2025, 09:00 UTC
WEDNESDAY = datetime(2025, 10, 15, 9, 0, tzinfo=timezone.utc)
# Monday 13 Oct 2025, 09:00 UTC
MONDAY = datetime(2025, 10, 13, 9, 0, tzinfo=timezone.utc)
# Saturday 1 Nov 2025, 09:00 UTC
FIRST_OF_MONTH = datetime(2025, 11, 1, 9, 0, tzinfo=timezone.utc)

# Dedicated engine for the db fixture; NullPool avoids asyncpg cross-loop issues
_test_engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ── In-memory stores ──────────────────────────────────────────────────────────


class InMemoryTaskStore:
    def __init__(self) -> None:
        self.tasks: list[Task] = []

    async def find_pending_in_range(self, user_id, start, end) -> list[Task]:
        found = [
            t for t in self.tasks
            if t.user_id == user_id
            and t.status == TaskStatus.PENDING
            and start <= t.due_date <= end
        ]
        return sorted(found, key=lambda t: (t.due_date, -PRIORITY_SCORES[t.priority]))

    async def find_due_soon(self, threshold_hours, now) -> list[Task]:
        target = now + timedelta(hours=threshold_hours)
        return [
            t for t in self.tasks
            if t.status == TaskStatus.PENDING
            and target - DUE_SOON_TOLERANCE <= t.due_date <= target + DUE_SOON_TOLERANCE
        ]

    async def count_created_in_range(self, user_id, start, end) -> int:
        return sum(1 for t in self.tasks if t.user_id == user_id and start <= t.created_at < end)

    async def find_completed_in_range(self, user_id, start, end) -> list[Task]:
        return [
            t for t in self.tasks
            if t.user_id == user_id
            and t.status == TaskStatus.COMPLETED
            and start <= t.updated_at < end
        ]


class InMemoryUserStore:
    def __init__(self) -> None:
        self.users: list[User] = []

    async def find_all(self) -> list[User]:
        return list(self.users)

    async def find_by_id(self, user_id) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    async def find_by_email_or_notification_email(self, value) -> list[User]:
        needle = value.strip().lower()
        return [
            u for u in self.users
            if u.email.lower() == needle or (u.notification_email or "").lower() == needle
        ]


@dataclass
class StoredLog:
    entry: NotificationLogCreate
    created_at: datetime

    @property
    def user_id(self) -> uuid.UUID:
        return self.entry.user_id

    @property
    def type(self) -> NotificationKind:
        return self.entry.type


class InMemoryNotificationLogStore:
    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.entries: list[StoredLog] = []

    async def create(self, entry: NotificationLogCreate) -> None:
        self.entries.append(StoredLog(entry=entry, created_at=self.clock()))

    async def exists_since(self, user_id, kinds, since) -> bool:
        return any(
            e.user_id == user_id and e.type in kinds and e.created_at >= since
            for e in self.entries
        )

    async def urgent_alert_exists(self, user_id, task_id, threshold_hours, since) -> bool:
        return any(
            e.user_id == user_id
            and e.type == NotificationKind.URGENT_ALERT
            and e.created_at >= since
            and e.entry.payload.task_id == task_id
            and e.entry.payload.threshold_hours == threshold_hours
            for e in self.entries
        )

    def of_type(self, kind: NotificationKind) -> list[StoredLog]:
        return [e for e in self.entries if e.type == kind]


# ── Channels ──────────────────────────────────────────────────────────────────


class RecordingChannel:
    """Records every ``send`` and its keyword options.

    Raises ``fail`` for recipients in ``fail_for`` (every recipient if None).
    """

    def __init__(self, fail: Exception | None = None, fail_for: set[str] | None = None) -> None:
        self.fail = fail
        self.fail_for = fail_for
        self.calls: list[tuple[Any, ...]] = []
        self.options: list[dict[str, Any]] = []

    async def send(self, *args: Any, **kwargs: Any) -> None:
        if self.fail is not None and (self.fail_for is None or args[0] in self.fail_for):
            raise self.fail
        self.calls.append(args)
        self.options.append(kwargs)

    @property
    def recipients(self) -> list[Any]:
        return [call[0] for call in self.calls]


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def tasks() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def users() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def logs() -> InMemoryNotificationLogStore:
    return InMemoryNotificationLogStore()


@pytest.fixture
def email() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def telegram() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def whatsapp() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def channels(email, telegram, whatsapp) -> NotificationChannels:
    return NotificationChannels(
        email=email,
        telegram=telegram,
        whatsapp=whatsapp,
        availability=ChannelAvailability(email=True, telegram=True, whatsapp=True),
    )


@pytest.fixture
def scheduler(tasks, users, logs, channels) -> NotificationScheduler:
    return NotificationScheduler(tasks, users, logs, channels, tz=timezone.utc)


@pytest.fixture
def make_user(users: InMemoryUserStore) -> Callable[..., User]:
    """Factory adding a User to the in-memory store; keyword overrides win."""

    def _make(**overrides: Any) -> User:
        n = len(users.users) + 1
        fields: dict[str, Any] = {
            "id": uuid.uuid4(),
            "name": f"Student {n}",
            "email": f"student{n}@example.com",
            "notification_email": None,
            "phone": None,
            "telegram_chat_id": None,
            "consent_given": False,
            "notify_by_email": True,
            "notify_by_telegram": False,
            "notify_by_whatsapp": False,
            "created_at": WEDNESDAY - timedelta(days=90),
            "updated_at": WEDNESDAY - timedelta(days=90),
        }
        fields.update(overrides)
        user = User(**fields)
        users.users.append(user)
        return user

    return _make


@pytest.fixture
def make_task(tasks: InMemoryTaskStore) -> Callable[..., Task]:
    """Factory adding a Task for ``user`` to the in-memory store."""

    def _make(user: User, due_date: datetime, **overrides: Any) -> Task:
        fields: dict[str, Any] = {
            "id": uuid.uuid4(),
            "user_id": user.id,
            "title": f"Task {len(tasks.tasks) + 1}",
            "description": None,
            "subject": "Mathematics",
            "due_date": due_date,
            "priority": TaskPriority.MEDIUM,
            "status": TaskStatus.PENDING,
            "created_at": due_date - timedelta(days=10),
            "updated_at": due_date - timedelta(days=10),
        }
        fields.update(overrides)
        task = Task(**fields)
        tasks.tasks.append(task)
        return task

    return _make


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    from app.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession]:
    """Provide a DB session that rolls back after each test.

    Store commits and rollbacks become SAVEPOINTs inside the outer
    transaction, so nothing a test writes survives it.
    """
    try:
        conn = await _test_engine.connect()
    except (OSError, SQLAlchemyError) as exc:
        pytest.skip(f"PostgreSQL not reachable: {exc}")
    trans = await conn.begin()
    await conn.run_sync(Base.metadata.create_all)
    session = AsyncSession(
        bind=conn,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        await session.close()
        await trans.rollback()
        await conn.close()
