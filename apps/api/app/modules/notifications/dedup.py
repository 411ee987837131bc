"""Idempotency check against the notification log."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime

from app.models.enums import NotificationKind
from app.modules.notifications.repository import NotificationLogStore


async def has_notification(
    logs: NotificationLogStore,
    user_id: uuid.UUID,
    kinds: Iterable[NotificationKind],
    since: datetime,
) -> bool:
    """True when any log of one of ``kinds`` exists for the user at or after ``since``."""
    kinds = list(kinds)
    if not kinds:
        return False
    return await logs.exists_since(user_id, kinds, since)
