"""Shared flow for the periodic (weekly / monthly) report runners."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

import structlog

from app.models.core import Task, User
from app.models.enums import JobOutcome, NotificationKind
from app.modules.notifications.channels import NotificationChannels
from app.modules.notifications.dedup import has_notification
from app.modules.notifications.repository import NotificationLogStore, TaskStore, UserStore
from app.modules.notifications.schemas import (
    NotificationLogCreate,
    ReportBatchSummary,
    SubjectCount,
)

logger = structlog.get_logger()

TOP_SUBJECTS = 3


@dataclass
class PeriodStats:
    start: datetime
    end: datetime
    created: int
    completed: list[Task]
    pending: list[Task]

    @property
    def is_empty(self) -> bool:
        return self.created == 0 and not self.completed and not self.pending

    @property
    def completion_rate(self) -> float:
        done = len(self.completed)
        return done / max(1, done + len(self.pending))


@dataclass
class RenderedReport:
    entry: NotificationLogCreate
    email_subject: str
    email_html: str


def subject_counts(tasks: Iterable[Task], limit: int = TOP_SUBJECTS) -> list[SubjectCount]:
    """Subjects with the most tasks, highest first; ties keep first-seen order."""
    counts = Counter(task.subject for task in tasks)
    return [SubjectCount(subject=s, count=n) for s, n in counts.most_common(limit)]


class ReportJob(ABC):
    """Dedup, gather stats, skip empty periods, email, log.

    Subclasses supply the period window and the report content.
    """

    kind: NotificationKind
    event: str

    def __init__(
        self,
        tasks: TaskStore,
        users: UserStore,
        logs: NotificationLogStore,
        channels: NotificationChannels,
    ) -> None:
        self.tasks = tasks
        self.users = users
        self.logs = logs
        self.channels = channels

    @abstractmethod
    def window(self, now: datetime) -> tuple[datetime, datetime]:
        """Half-open [start, end) period containing ``now``."""

    @abstractmethod
    def render(self, user: User, stats: PeriodStats, now: datetime) -> RenderedReport: ...

    async def gather(self, user: User, start: datetime, end: datetime) -> PeriodStats:
        created = await self.tasks.count_created_in_range(user.id, start, end)
        completed = await self.tasks.find_completed_in_range(user.id, start, end)
        pending = await self.tasks.find_pending_in_range(user.id, start, end)
        return PeriodStats(
            start=start,
            end=end,
            created=created,
            completed=list(completed),
            pending=[task for task in pending if task.due_date < end],
        )

    async def run_for_user(self, user: User, now: datetime) -> JobOutcome:
        start, end = self.window(now)
        if await has_notification(self.logs, user.id, [self.kind], start):
            return JobOutcome.SKIPPED_DUPLICATE

        stats = await self.gather(user, start, end)
        if stats.is_empty:
            return JobOutcome.SKIPPED_EMPTY

        report = self.render(user, stats, now)
        if user.notify_by_email:
            await self.channels.email.send(
                user.notification_address, report.email_subject, report.email_html
            )

        # Logged even without email so the period is not reprocessed
        await self.logs.create(report.entry)
        logger.info(
            f"{self.event}_sent",
            user_id=str(user.id),
            emailed=user.notify_by_email,
            completion_rate=round(stats.completion_rate, 2),
        )
        return JobOutcome.SENT

    async def run_batch(self, now: datetime, users: Sequence[User] | None = None) -> ReportBatchSummary:
        if users is None:
            users = await self.users.find_all()

        summary = ReportBatchSummary()
        for user in users:
            try:
                summary.record(await self.run_for_user(user, now))
            except Exception as e:
                logger.error(f"{self.event}_user_failed", email=user.email, error=str(e))
                summary.record_error()

        logger.info(f"{self.event}_complete", **summary.model_dump())
        return summary
