"""NotificationLog model: append-only record of every scheduled notification sent."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import TimestampedModel
from app.models.enums import NotificationKind


class NotificationLog(TimestampedModel):
    """One row per (user, kind, period) send attempt.

    Rows are written after the channels were attempted and are never
    updated or deleted by the notification engine. The dedup checker reads
    them to decide whether a period was already handled.
    """

    __tablename__ = "notification_logs"
    __table_args__ = (
        Index("ix_notification_logs_user_type_created", "user_id", "type", "created_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[NotificationKind] = mapped_column(
        Enum(NotificationKind, native_enum=False, length=40),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default="{}",
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationLog(id={self.id}, user_id={self.user_id}, "
            f"type={self.type.value!r}, created_at={self.created_at})>"
        )
