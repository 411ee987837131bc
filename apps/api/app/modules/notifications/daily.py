"""Daily pending-tasks digest, per user and as a batch over all users."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

import structlog

from app.models.core import User
from app.models.enums import JobOutcome, NotificationKind
from app.modules.notifications.channels import NotificationChannels
from app.modules.notifications.dedup import has_notification
from app.modules.notifications.digest import (
    DigestItem,
    build_digest_items,
    select_highlights,
)
from app.modules.notifications.rendering import daily_digest_text, render_email
from app.modules.notifications.repository import NotificationLogStore, TaskStore, UserStore
from app.modules.notifications.schemas import (
    DailyBatchSummary,
    DailyDigestPayload,
    HighlightSnapshot,
    NotificationLogCreate,
)
from app.modules.notifications.windows import start_of_day

logger = structlog.get_logger()

LOOKBACK = timedelta(days=30)
LOOKAHEAD = timedelta(days=7)
DAILY_KINDS = (NotificationKind.DAILY_PENDING_TASKS, NotificationKind.DAILY_SUMMARY)

EMAIL_SUBJECT = "Daily summary of your pending tasks"


def _snapshot(items: Sequence[DigestItem]) -> list[HighlightSnapshot]:
    return [
        HighlightSnapshot(
            title=item.title,
            subject=item.subject,
            due_date=item.due_date,
            status_label=item.status_label,
            priority_label=item.priority_label,
        )
        for item in items
    ]


class DailyDigestJob:
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

    async def run_for_user(
        self,
        user: User,
        now: datetime,
        recipient_override: str | None = None,
        force: bool = False,
    ) -> JobOutcome:
        """Send one user's digest unless they have no pending tasks or already got one today.

        With ``recipient_override`` the email goes to that address and the
        chat channels are not used.
        """
        pending = await self.tasks.find_pending_in_range(user.id, now - LOOKBACK, now + LOOKAHEAD)
        if not pending:
            return JobOutcome.SKIPPED_NO_TASKS

        if not force and await has_notification(self.logs, user.id, DAILY_KINDS, start_of_day(now)):
            return JobOutcome.SKIPPED_DUPLICATE

        items = build_digest_items(pending, now)
        highlights = select_highlights(items)
        channels_used: list[str] = []

        if recipient_override or user.notify_by_email:
            html = render_email(
                "daily_digest.html",
                user_name=user.name,
                summary_date=now.strftime("%A, %d %B %Y"),
                items=items,
                highlights=highlights,
            )
            await self.channels.email.send(
                recipient_override or user.notification_address, EMAIL_SUBJECT, html
            )
            channels_used.append("email")

        if not recipient_override and user.consent_given:
            if user.notify_by_telegram and user.telegram_chat_id:
                await self.channels.telegram.send(
                    user.telegram_chat_id, daily_digest_text(items, highlights, escape_html=True)
                )
                channels_used.append("telegram")

            if user.notify_by_whatsapp and user.phone and self.channels.availability.whatsapp:
                try:
                    await self.channels.whatsapp.send(user.phone, daily_digest_text(items, highlights))
                    channels_used.append("whatsapp")
                except Exception as e:
                    logger.warning("whatsapp_send_failed", user_id=str(user.id), error=str(e))

        noun = "task" if len(items) == 1 else "tasks"
        await self.logs.create(
            NotificationLogCreate(
                user_id=user.id,
                title="Daily task summary",
                message=f"You have {len(items)} pending {noun}.",
                payload=DailyDigestPayload(count=len(items), highlights=_snapshot(highlights)),
            )
        )
        logger.info("daily_digest_sent", user_id=str(user.id), count=len(items), channels=channels_used)
        return JobOutcome.SENT

    async def run_batch(
        self,
        now: datetime,
        recipient_override: str | None = None,
        force: bool = False,
    ) -> DailyBatchSummary:
        """Run the digest for every user, or only the users matching ``recipient_override``."""
        if recipient_override:
            users = await self.users.find_by_email_or_notification_email(recipient_override)
        else:
            users = await self.users.find_all()

        summary = DailyBatchSummary()
        for user in users:
            try:
                outcome = await self.run_for_user(
                    user, now, recipient_override=recipient_override, force=force
                )
                summary.record(outcome)
            except Exception as e:
                logger.error("daily_digest_user_failed", email=user.email, error=str(e))
                summary.record_error()

        logger.info("daily_digest_complete", **summary.model_dump())
        return summary
