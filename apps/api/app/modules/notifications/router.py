"""Operational endpoints for the notification engine.

All routes are protected by the shared ``CRON_SECRET`` (``x-cron-secret``
header, or ``secret`` / ``key`` query parameter for cron services that cannot
set headers).
"""

import hmac

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.modules.notifications.channels import (
    ChannelError,
    ChannelNotConfiguredError,
    NotificationChannels,
    build_channels,
)
from app.modules.notifications.scheduler import NotificationScheduler, build_scheduler
from app.modules.notifications.schemas import (
    DigestTriggerResponse,
    SchedulerRunOptions,
    SchedulerTriggerResponse,
    TelegramTestRequest,
    UrgentCheckResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/notifications", tags=["notifications"])
scheduler_router = APIRouter(prefix="/scheduler", tags=["scheduler"])


# ── Dependencies ─────────────────────────────────────────────────────────────


async def require_cron_secret(
    x_cron_secret: str | None = Header(None),
    secret: str | None = Query(None),
    key: str | None = Query(None),
) -> None:
    expected = settings.CRON_SECRET
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="CRON_SECRET is not configured",
        )
    provided = x_cron_secret or secret or key
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid cron secret")


def get_channels() -> NotificationChannels:
    return build_channels(settings)


async def get_notification_scheduler(
    db: AsyncSession = Depends(get_db),
    channels: NotificationChannels = Depends(get_channels),
) -> NotificationScheduler:
    return build_scheduler(db, channels)


_TRUE_FLAGS = frozenset({"true", "1", "yes", "on"})
_FALSE_FLAGS = frozenset({"false", "0", "no", "off"})


def parse_flag(value: str | None) -> bool | None:
    """``true/1/yes/on`` or ``false/0/no/off``; anything else counts as unset."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE_FLAGS:
        return True
    if normalized in _FALSE_FLAGS:
        return False
    return None


# ── Scheduler ────────────────────────────────────────────────────────────────


@scheduler_router.post(
    "/notifications",
    response_model=SchedulerTriggerResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def run_scheduled_notifications(
    skip_daily: str | None = Query(None, alias="skipDaily"),
    force_daily: str | None = Query(None, alias="forceDaily"),
    force_weekly: str | None = Query(None, alias="forceWeekly"),
    force_monthly: str | None = Query(None, alias="forceMonthly"),
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
):
    """Run the scheduler now; ``force*`` flags bypass calendar gating.

    Unrecognised flag values are ignored, so the calendar still applies.
    """
    options = SchedulerRunOptions(
        skip_daily=parse_flag(skip_daily) is True,
        force_daily=parse_flag(force_daily) is True,
        force_weekly=parse_flag(force_weekly),
        force_monthly=parse_flag(force_monthly),
    )
    summary = await scheduler.run(options=options)
    return SchedulerTriggerResponse(
        message="Scheduled notifications executed",
        summary=summary.as_dict(),
    )


# ── Manual triggers ──────────────────────────────────────────────────────────


@router.post(
    "/digest",
    response_model=DigestTriggerResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def send_pending_tasks_digest(
    target_email: str | None = Query(None, alias="targetEmail"),
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
):
    """Send the daily digest now, optionally only to the user owning ``targetEmail``."""
    target = target_email.strip() if target_email and target_email.strip() else None
    now = scheduler.resolve_now()
    summary = await scheduler.daily.run_batch(now, recipient_override=target)
    message = f"Digest sent to {target}" if target else "Digest sent to eligible users"
    return DigestTriggerResponse(message=message, summary=summary)


@router.post(
    "/reminders",
    response_model=UrgentCheckResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def check_task_reminders(
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
):
    """Run the urgent reminder check now."""
    sent = await scheduler.urgent.check(scheduler.resolve_now())
    return UrgentCheckResponse(reminders_sent=sent)


@router.post(
    "/telegram/test",
    response_model=dict,
    dependencies=[Depends(require_cron_secret)],
)
async def send_telegram_test_message(
    body: TelegramTestRequest,
    channels: NotificationChannels = Depends(get_channels),
):
    """Send a free-form Telegram message, to the default chat unless one is given."""
    if not body.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")

    chat_id = (body.chat_id or "").strip() or settings.TELEGRAM_DEFAULT_CHAT_ID.strip()
    if not chat_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="chatId is required when TELEGRAM_DEFAULT_CHAT_ID is not set",
        )

    try:
        # Free-form text: Telegram must not parse it as HTML
        await channels.telegram.send(chat_id, body.message, plain=True)
    except ChannelNotConfiguredError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    except ChannelError as exc:
        logger.warning("telegram_test_failed", chat_id=chat_id, error=str(exc))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    return {"success": True, "message": "Telegram message sent successfully"}
