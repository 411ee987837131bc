"""Scheduler orchestrator: urgent reminders, then daily, weekly and monthly batches.

Invoked hourly by Celery beat (``tasks.run_scheduled_notifications``) and on
demand through ``POST /v1/scheduler/notifications``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.enums import NotificationKind
from app.modules.notifications.channels import NotificationChannels, build_channels
from app.modules.notifications.daily import DailyDigestJob
from app.modules.notifications.monthly import MonthlyReportJob
from app.modules.notifications.repository import (
    NotificationLogStore,
    SqlNotificationLogStore,
    SqlTaskStore,
    SqlUserStore,
    TaskStore,
    UserStore,
)
from app.modules.notifications.schemas import SchedulerRunOptions, SchedulerRunSummary
from app.modules.notifications.urgent import UrgentReminderChecker
from app.modules.notifications.weekly import WeeklyReportJob

logger = structlog.get_logger()


def is_calendar_day(kind: NotificationKind, now: datetime) -> bool:
    """Weekly reports go out on Mondays, monthly reports on the 1st."""
    if kind == NotificationKind.WEEKLY_REPORT:
        return now.weekday() == 0
    if kind == NotificationKind.MONTHLY_REPORT:
        return now.day == 1
    raise ValueError(f"{kind.value} has no calendar schedule")


def should_run(kind: NotificationKind, now: datetime, override: bool | None) -> bool:
    """An explicit override wins; otherwise follow the calendar for ``kind``."""
    if override is None:
        return is_calendar_day(kind, now)
    return override


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationScheduler:
    def __init__(
        self,
        tasks: TaskStore,
        users: UserStore,
        logs: NotificationLogStore,
        channels: NotificationChannels,
        clock: Callable[[], datetime] | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self.clock = clock or _utcnow
        self.tz = tz or ZoneInfo(settings.NOTIFICATION_TIMEZONE)
        self.urgent = UrgentReminderChecker(tasks, users, logs, channels)
        self.daily = DailyDigestJob(tasks, users, logs, channels)
        self.weekly = WeeklyReportJob(tasks, users, logs, channels)
        self.monthly = MonthlyReportJob(tasks, users, logs, channels)

    def resolve_now(self, now: datetime | None = None) -> datetime:
        """``now`` (or the clock) expressed in the notification timezone; naive means UTC."""
        now = now or self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz)

    async def run(
        self,
        now: datetime | None = None,
        options: SchedulerRunOptions | None = None,
    ) -> SchedulerRunSummary:
        options = options or SchedulerRunOptions()
        now = self.resolve_now(now)
        summary = SchedulerRunSummary(executed_at=now)

        try:
            await self.urgent.check(now)
        except Exception as e:
            logger.error("urgent_check_failed", error=str(e))

        if not options.skip_daily:
            summary.daily = await self.daily.run_batch(now, force=options.force_daily)

        if should_run(NotificationKind.WEEKLY_REPORT, now, options.force_weekly):
            summary.weekly = await self.weekly.run_batch(now)

        if should_run(NotificationKind.MONTHLY_REPORT, now, options.force_monthly):
            summary.monthly = await self.monthly.run_batch(now)

        logger.info(
            "scheduler_run_complete",
            executed_at=now.isoformat(),
            daily=summary.daily is not None,
            weekly=summary.weekly is not None,
            monthly=summary.monthly is not None,
        )
        return summary


def build_scheduler(
    db: AsyncSession, channels: NotificationChannels | None = None
) -> NotificationScheduler:
    """Scheduler wired to the SQL stores on ``db`` and the configured channels."""
    return NotificationScheduler(
        tasks=SqlTaskStore(db),
        users=SqlUserStore(db),
        logs=SqlNotificationLogStore(db),
        channels=channels or build_channels(settings),
    )


async def trigger_scheduled_notifications(
    now: datetime | None = None,
    options: SchedulerRunOptions | None = None,
) -> SchedulerRunSummary:
    """Run the orchestrator on a fresh worker database session."""
    from app.core.celery_db import get_celery_db_session

    async with get_celery_db_session() as db:
        return await build_scheduler(db).run(now, options)
