"""Notification Celery tasks: the hourly scheduler run and an on-demand reminder check."""

from __future__ import annotations

import asyncio

import structlog
from celery import shared_task

logger = structlog.get_logger()


@shared_task(name="tasks.run_scheduled_notifications", bind=True, max_retries=0)
def run_scheduled_notifications(self) -> dict:
    """Urgent reminders every run; daily, weekly and monthly batches per calendar."""
    return asyncio.run(_async_run_scheduled())


async def _async_run_scheduled() -> dict:
    from app.modules.notifications.scheduler import trigger_scheduled_notifications

    summary = await trigger_scheduled_notifications()
    return summary.as_dict()


@shared_task(name="tasks.check_task_reminders")
def check_task_reminders() -> dict:
    """Run only the urgent reminder check."""
    return asyncio.run(_async_check_reminders())


async def _async_check_reminders() -> dict:
    from app.core.celery_db import get_celery_db_session
    from app.modules.notifications.scheduler import build_scheduler

    async with get_celery_db_session() as db:
        scheduler = build_scheduler(db)
        sent = await scheduler.urgent.check(scheduler.resolve_now())

    logger.info("task_reminders_checked", reminders_sent=sent)
    return {"reminders_sent": sent}
