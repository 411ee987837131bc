"""User and Task models.

Both tables are owned by the account and task CRUD layer; the notification
engine only reads them.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel
from app.models.enums import TaskPriority, TaskStatus


def _enum_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_email", "email", unique=True),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    notification_email: Mapped[str | None] = mapped_column(String(320))
    phone: Mapped[str | None] = mapped_column(String(32))
    telegram_chat_id: Mapped[str | None] = mapped_column(String(64))

    # Channel opt-ins only take effect when consent_given is true
    consent_given: Mapped[bool] = mapped_column(default=False, server_default="false", nullable=False)
    notify_by_email: Mapped[bool] = mapped_column(default=True, server_default="true", nullable=False)
    notify_by_telegram: Mapped[bool] = mapped_column(default=False, server_default="false", nullable=False)
    notify_by_whatsapp: Mapped[bool] = mapped_column(default=False, server_default="false", nullable=False)

    tasks: Mapped[list["Task"]] = relationship(back_populates="user")

    @property
    def notification_address(self) -> str:
        """Notification email override when set, account email otherwise."""
        if self.notification_email and self.notification_email.strip():
            return self.notification_email.strip()
        return self.email

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"


class Task(BaseModel):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id_status_due_date", "user_id", "status", "due_date"),
        Index("ix_tasks_status_due_date", "status", "due_date"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        default=TaskStatus.PENDING,
    )

    user: Mapped["User"] = relationship(back_populates="tasks")

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title={self.title!r}, status={self.status.value})>"
