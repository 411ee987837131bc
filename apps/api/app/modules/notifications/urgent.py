"""Urgent reminders for pending tasks 24, 48 and 72 hours before they are due."""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog

from app.models.core import Task
from app.modules.notifications.channels import NotificationChannels
from app.modules.notifications.digest import format_due_date
from app.modules.notifications.rendering import render_email
from app.modules.notifications.repository import NotificationLogStore, TaskStore, UserStore
from app.modules.notifications.schemas import NotificationLogCreate, UrgentAlertPayload

logger = structlog.get_logger()

REMINDER_THRESHOLDS_HOURS = (24, 48, 72)
# Hourly runs can both see a task inside its ±30 min window
RECENT_ALERT_WINDOW = timedelta(hours=2)


class UrgentReminderChecker:
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

    async def check(self, now: datetime) -> int:
        """Send due-soon reminders; returns the number sent. Never raises per task."""
        sent = 0
        for hours in REMINDER_THRESHOLDS_HOURS:
            try:
                due_soon = await self.tasks.find_due_soon(hours, now)
            except Exception as e:
                logger.error("urgent_threshold_failed", threshold_hours=hours, error=str(e))
                continue

            for task in due_soon:
                try:
                    if await self._remind(task, hours, now):
                        sent += 1
                except Exception as e:
                    logger.warning(
                        "urgent_reminder_failed",
                        task_id=str(task.id),
                        threshold_hours=hours,
                        error=str(e),
                    )

        logger.info("urgent_check_complete", reminders_sent=sent)
        return sent

    async def _remind(self, task: Task, hours: int, now: datetime) -> bool:
        user = await self.users.find_by_id(task.user_id)
        if user is None:
            logger.warning("urgent_reminder_owner_missing", task_id=str(task.id))
            return False

        if await self.logs.urgent_alert_exists(user.id, task.id, hours, now - RECENT_ALERT_WINDOW):
            return False

        html = render_email(
            "task_reminder.html",
            user_name=user.name,
            task_title=task.title,
            due_date=format_due_date(task.due_date, now),
            threshold_hours=hours,
        )
        await self.channels.email.send(
            user.notification_address,
            f'Reminder: "{task.title}" is due in {hours} hours',
            html,
        )
        await self.logs.create(
            NotificationLogCreate(
                user_id=user.id,
                title=f"Task due soon ({hours}h)",
                message=f'The task "{task.title}" is close to its due date.',
                payload=UrgentAlertPayload(task_id=task.id, threshold_hours=hours),
            )
        )
        logger.info("urgent_reminder_sent", task_id=str(task.id), user_id=str(user.id), threshold_hours=hours)
        return True
