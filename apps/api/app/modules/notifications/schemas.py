"""Notification engine schemas: log payloads, batch summaries, run options."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.enums import JobOutcome, NotificationKind


class CamelModel(BaseModel):
    """Serialised with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Notification log payloads (tagged by kind) ─────────────────────────────────


class HighlightSnapshot(CamelModel):
    title: str
    subject: str
    due_date: datetime
    status_label: str
    priority_label: str


class SubjectCount(CamelModel):
    subject: str
    count: int


class BestDay(CamelModel):
    label: str
    completions: int


class UrgentAlertPayload(CamelModel):
    kind: Literal[NotificationKind.URGENT_ALERT] = NotificationKind.URGENT_ALERT
    task_id: uuid.UUID
    threshold_hours: int


class DailyDigestPayload(CamelModel):
    kind: Literal[NotificationKind.DAILY_PENDING_TASKS] = NotificationKind.DAILY_PENDING_TASKS
    count: int
    highlights: list[HighlightSnapshot] = Field(default_factory=list)


class WeeklyReportPayload(CamelModel):
    kind: Literal[NotificationKind.WEEKLY_REPORT] = NotificationKind.WEEKLY_REPORT
    week_start: date
    created: int
    completed: int
    pending: int
    completion_rate: float
    top_subjects: list[SubjectCount] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class MonthlyReportPayload(CamelModel):
    kind: Literal[NotificationKind.MONTHLY_REPORT] = NotificationKind.MONTHLY_REPORT
    month_start: date
    created: int
    completed: int
    pending: int
    completion_rate: float
    average_completion_hours: float | None = None
    best_day: BestDay | None = None
    focus_areas: list[SubjectCount] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)


NotificationPayload = Annotated[
    Union[UrgentAlertPayload, DailyDigestPayload, WeeklyReportPayload, MonthlyReportPayload],
    Field(discriminator="kind"),
]


class NotificationLogCreate(BaseModel):
    """A log entry to persist; its type is always the payload's kind."""

    user_id: uuid.UUID
    title: str
    message: str
    payload: NotificationPayload

    @property
    def type(self) -> NotificationKind:
        return self.payload.kind


# ── Batch summaries ────────────────────────────────────────────────────────────


class DailyBatchSummary(CamelModel):
    attempted: int = 0
    sent: int = 0
    skipped_no_tasks: int = 0
    skipped_duplicate: int = 0
    errors: int = 0

    def record(self, outcome: JobOutcome) -> None:
        self.attempted += 1
        if outcome is JobOutcome.SENT:
            self.sent += 1
        elif outcome is JobOutcome.SKIPPED_NO_TASKS:
            self.skipped_no_tasks += 1
        elif outcome is JobOutcome.SKIPPED_DUPLICATE:
            self.skipped_duplicate += 1

    def record_error(self) -> None:
        self.attempted += 1
        self.errors += 1


class ReportBatchSummary(CamelModel):
    attempted: int = 0
    sent: int = 0
    skipped_duplicate: int = 0
    skipped_empty: int = 0
    errors: int = 0

    def record(self, outcome: JobOutcome) -> None:
        self.attempted += 1
        if outcome is JobOutcome.SENT:
            self.sent += 1
        elif outcome is JobOutcome.SKIPPED_DUPLICATE:
            self.skipped_duplicate += 1
        elif outcome is JobOutcome.SKIPPED_EMPTY:
            self.skipped_empty += 1

    def record_error(self) -> None:
        self.attempted += 1
        self.errors += 1


# ── Scheduler run ──────────────────────────────────────────────────────────────


class SchedulerRunOptions(CamelModel):
    skip_daily: bool = False
    force_daily: bool = False
    # None means "follow the calendar"; True/False override it
    force_weekly: bool | None = None
    force_monthly: bool | None = None


class SchedulerRunSummary(CamelModel):
    executed_at: datetime
    daily: DailyBatchSummary | None = None
    weekly: ReportBatchSummary | None = None
    monthly: ReportBatchSummary | None = None

    def as_dict(self) -> dict[str, Any]:
        """Wire shape: ``daily`` is omitted when skipped, weekly/monthly are null."""
        data = self.model_dump(mode="json", by_alias=True)
        if self.daily is None:
            data.pop("daily")
        return data


# ── HTTP bodies ────────────────────────────────────────────────────────────────


class SchedulerTriggerResponse(BaseModel):
    success: bool = True
    message: str
    summary: dict[str, Any]


class UrgentCheckResponse(CamelModel):
    success: bool = True
    reminders_sent: int


class DigestTriggerResponse(BaseModel):
    success: bool = True
    message: str
    summary: DailyBatchSummary


class TelegramTestRequest(CamelModel):
    message: str
    chat_id: str | None = None
