"""Enums shared by the task, user and notification models."""

import enum


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class NotificationKind(str, enum.Enum):
    URGENT_ALERT = "URGENT_ALERT"
    DAILY_PENDING_TASKS = "DAILY_PENDING_TASKS"
    DAILY_SUMMARY = "DAILY_SUMMARY"  # legacy alias written by older daily digests
    WEEKLY_REPORT = "WEEKLY_REPORT"
    MONTHLY_REPORT = "MONTHLY_REPORT"


class JobOutcome(str, enum.Enum):
    SENT = "sent"
    SKIPPED_NO_TASKS = "skipped_no_tasks"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    SKIPPED_EMPTY = "skipped_empty"
