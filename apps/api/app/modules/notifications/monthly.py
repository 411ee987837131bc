"""Monthly performance report."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from app.models.core import Task, User
from app.models.enums import NotificationKind
from app.modules.notifications.rendering import render_email
from app.modules.notifications.reports import (
    PeriodStats,
    RenderedReport,
    ReportJob,
    subject_counts,
)
from app.modules.notifications.schemas import (
    BestDay,
    MonthlyReportPayload,
    NotificationLogCreate,
)
from app.modules.notifications.windows import start_of_month, start_of_next_month

WEEKDAY_LABELS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def average_completion_hours(completed: Sequence[Task]) -> float | None:
    """Mean hours from creation to completion, or None with no completions."""
    if not completed:
        return None
    total = sum((task.updated_at - task.created_at).total_seconds() for task in completed)
    return round(total / len(completed) / 3600, 1)


def best_day(completed: Sequence[Task], now: datetime) -> BestDay | None:
    """Weekday with the most completions; on a tie the earlier weekday wins."""
    if not completed:
        return None
    counts = Counter(
        (task.updated_at.astimezone(now.tzinfo) if now.tzinfo else task.updated_at).weekday()
        for task in completed
    )
    day = min(counts, key=lambda d: (-counts[d], d))
    return BestDay(label=WEEKDAY_LABELS[day], completions=counts[day])


def build_achievements(
    completed: int,
    completion_rate: float,
    avg_hours: float | None,
    top_day: BestDay | None,
) -> list[str]:
    achievements: list[str] = []
    if completed:
        noun = "task" if completed == 1 else "tasks"
        achievements.append(f"You completed {completed} {noun} this month.")
    if completion_rate >= 0.8:
        achievements.append(f"Outstanding completion rate of {round(completion_rate * 100)}%!")
    elif completion_rate >= 0.6:
        achievements.append(f"Solid completion rate of {round(completion_rate * 100)}%.")
    if avg_hours is not None:
        achievements.append(f"On average you finished a task {avg_hours:.1f} hours after creating it.")
    if top_day is not None:
        achievements.append(f"{top_day.label} was your most productive day.")
    if not achievements:
        achievements.append("Every step counts. Pick one pending task and finish it this week!")
    return achievements


class MonthlyReportJob(ReportJob):
    kind = NotificationKind.MONTHLY_REPORT
    event = "monthly_report"

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        return start_of_month(now), start_of_next_month(now)

    def render(self, user: User, stats: PeriodStats, now: datetime) -> RenderedReport:
        rate = stats.completion_rate
        avg_hours = average_completion_hours(stats.completed)
        top_day = best_day(stats.completed, now)
        payload = MonthlyReportPayload(
            month_start=stats.start.date(),
            created=stats.created,
            completed=len(stats.completed),
            pending=len(stats.pending),
            completion_rate=round(rate, 4),
            average_completion_hours=avg_hours,
            best_day=top_day,
            focus_areas=subject_counts(stats.pending),
            achievements=build_achievements(len(stats.completed), rate, avg_hours, top_day),
        )
        label = f"{stats.start:%B %Y}"
        return RenderedReport(
            entry=NotificationLogCreate(
                user_id=user.id,
                title="Monthly performance report",
                message=f"You completed {payload.completed} tasks in {label}.",
                payload=payload,
            ),
            email_subject=f"Your monthly performance: {label}",
            email_html=render_email(
                "monthly_report.html", user_name=user.name, month_label=label, report=payload
            ),
        )
