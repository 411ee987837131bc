"""Weekly report: created/completed/pending counts for the ISO week, plus tips."""

from __future__ import annotations

from datetime import datetime, timedelta

from app.models.core import User
from app.models.enums import NotificationKind
from app.modules.notifications.rendering import render_email
from app.modules.notifications.reports import (
    PeriodStats,
    RenderedReport,
    ReportJob,
    subject_counts,
)
from app.modules.notifications.schemas import (
    NotificationLogCreate,
    SubjectCount,
    WeeklyReportPayload,
)
from app.modules.notifications.windows import end_of_week, start_of_week

LOW_COMPLETION_RATE = 0.6


def build_suggestions(completion_rate: float, top_subjects: list[SubjectCount]) -> list[str]:
    suggestions: list[str] = []
    if completion_rate < LOW_COMPLETION_RATE:
        suggestions.append(
            "Try splitting larger tasks into smaller steps so you can finish something every day."
        )
    if top_subjects:
        top = top_subjects[0]
        noun = "task" if top.count == 1 else "tasks"
        suggestions.append(
            f"Reserve focused time for {top.subject}: it has {top.count} pending {noun}."
        )
    if completion_rate >= LOW_COMPLETION_RATE:
        suggestions.append("Great pace this week. Keep the momentum going!")
    return suggestions


def week_label(week_start: datetime) -> str:
    return f"{week_start:%d %b} to {end_of_week(week_start):%d %b %Y}"


class WeeklyReportJob(ReportJob):
    kind = NotificationKind.WEEKLY_REPORT
    event = "weekly_report"

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        start = start_of_week(now)
        return start, start + timedelta(days=7)

    def render(self, user: User, stats: PeriodStats, now: datetime) -> RenderedReport:
        top_subjects = subject_counts(stats.pending)
        rate = stats.completion_rate
        payload = WeeklyReportPayload(
            week_start=stats.start.date(),
            created=stats.created,
            completed=len(stats.completed),
            pending=len(stats.pending),
            completion_rate=round(rate, 4),
            top_subjects=top_subjects,
            suggestions=build_suggestions(rate, top_subjects),
        )
        label = week_label(stats.start)
        total = payload.completed + payload.pending
        return RenderedReport(
            entry=NotificationLogCreate(
                user_id=user.id,
                title="Weekly report",
                message=f"You completed {payload.completed} of {total} tasks this week.",
                payload=payload,
            ),
            email_subject=f"Your weekly report ({label})",
            email_html=render_email(
                "weekly_report.html", user_name=user.name, week_label=label, report=payload
            ),
        )
