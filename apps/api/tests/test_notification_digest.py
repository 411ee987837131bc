"""Tests for digest item building and highlight selection."""

from datetime import timedelta

from app.models.enums import TaskPriority
from app.modules.notifications.digest import build_digest_item, build_digest_items, select_highlights

from conftest import WEDNESDAY

NOW = WEDNESDAY


# ── Status labels ─────────────────────────────────────────────────────────────


def test_due_in_two_hours_is_due_today(make_user, make_task) -> None:
    task = make_task(make_user(), NOW + timedelta(hours=2))
    item = build_digest_item(task, NOW)
    assert item.days_remaining == 0
    assert item.status_label == "Due today"
    assert item.is_critical
    assert not item.is_overdue


def test_overdue_by_one_hour(make_user, make_task) -> None:
    task = make_task(make_user(), NOW - timedelta(hours=1))
    item = build_digest_item(task, NOW)
    assert item.days_remaining == 0
    assert item.status_label == "Overdue"
    assert item.is_overdue


def test_due_in_25_hours_is_one_day_left(make_user, make_task) -> None:
    task = make_task(make_user(), NOW + timedelta(hours=25))
    item = build_digest_item(task, NOW)
    assert item.days_remaining == 1
    assert item.status_label == "1 day left"


def test_due_in_five_days_is_not_critical(make_user, make_task) -> None:
    task = make_task(make_user(), NOW + timedelta(days=5, hours=1), priority=TaskPriority.HIGH)
    item = build_digest_item(task, NOW)
    assert item.status_label == "5 days left"
    assert not item.is_critical
    assert item.priority_label == "High"
    assert item.priority_score == 3


def test_exactly_two_days_is_critical(make_user, make_task) -> None:
    task = make_task(make_user(), NOW + timedelta(days=2))
    assert build_digest_item(task, NOW).is_critical


def test_formatted_due_date(make_user, make_task) -> None:
    task = make_task(make_user(), NOW + timedelta(days=1, hours=5, minutes=30))
    assert build_digest_item(task, NOW).formatted_due_date == "16 Oct 2025, 14:30"


# ── Highlights ────────────────────────────────────────────────────────────────


def test_highlights_prefer_critical_items(make_user, make_task) -> None:
    user = make_user()
    due = [NOW + timedelta(days=d) for d in (4, 1, 5, -1, 6)]
    items = build_digest_items([make_task(user, d) for d in due], NOW)
    highlights = select_highlights(items)
    assert [h.due_date for h in highlights] == [due[1], due[3]]


def test_highlights_fall_back_to_first_three(make_user, make_task) -> None:
    user = make_user()
    items = build_digest_items(
        [make_task(user, NOW + timedelta(days=d)) for d in (3, 4, 5, 6)], NOW
    )
    assert select_highlights(items) == items[:3]


def test_highlights_capped_at_three(make_user, make_task) -> None:
    user = make_user()
    items = build_digest_items(
        [make_task(user, NOW + timedelta(hours=h)) for h in (1, 2, 3, 4, 5)], NOW
    )
    assert len(select_highlights(items)) == 3
