"""Turn pending tasks into display-ready digest items."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.models.core import Task
from app.models.enums import TaskPriority

CRITICAL_WINDOW = timedelta(days=2)
MAX_HIGHLIGHTS = 3

PRIORITY_SCORES: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}

PRIORITY_LABELS: dict[TaskPriority, str] = {
    TaskPriority.HIGH: "High",
    TaskPriority.MEDIUM: "Medium",
    TaskPriority.LOW: "Low",
}


@dataclass(frozen=True)
class DigestItem:
    title: str
    subject: str
    due_date: datetime
    formatted_due_date: str
    status_label: str
    days_remaining: int
    priority_label: str
    priority_score: int
    is_critical: bool
    is_overdue: bool


def format_due_date(due_date: datetime, now: datetime) -> str:
    if due_date.tzinfo is not None and now.tzinfo is not None:
        due_date = due_date.astimezone(now.tzinfo)
    return due_date.strftime("%d %b %Y, %H:%M")


def status_label(diff: timedelta, days_remaining: int) -> str:
    if diff < timedelta(0):
        return "Overdue"
    if days_remaining == 0:
        return "Due today"
    if days_remaining == 1:
        return "1 day left"
    return f"{days_remaining} days left"


def build_digest_item(task: Task, now: datetime) -> DigestItem:
    diff = task.due_date - now
    # whole days left: 2h is "Due today", 25h is "1 day left"
    days_remaining = max(0, diff // timedelta(days=1))
    priority = TaskPriority(task.priority)

    return DigestItem(
        title=task.title,
        subject=task.subject,
        due_date=task.due_date,
        formatted_due_date=format_due_date(task.due_date, now),
        status_label=status_label(diff, days_remaining),
        days_remaining=days_remaining,
        priority_label=PRIORITY_LABELS[priority],
        priority_score=PRIORITY_SCORES[priority],
        is_critical=diff <= CRITICAL_WINDOW,
        is_overdue=diff < timedelta(0),
    )


def build_digest_items(tasks: Iterable[Task], now: datetime) -> list[DigestItem]:
    """Build one item per task, keeping the order the tasks were given in."""
    return [build_digest_item(task, now) for task in tasks]


def select_highlights(
    items: Sequence[DigestItem], limit: int = MAX_HIGHLIGHTS
) -> list[DigestItem]:
    """First critical/overdue items, or the first items when none are critical."""
    critical = [item for item in items if item.is_critical or item.is_overdue]
    return list((critical or items)[:limit])
