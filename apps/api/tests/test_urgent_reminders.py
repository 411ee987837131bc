"""Tests for the urgent (24/48/72h) reminder checker."""

import uuid
from datetime import timedelta

import pytest

from app.models.enums import NotificationKind, TaskStatus
from app.modules.notifications.urgent import UrgentReminderChecker

from conftest import WEDNESDAY

pytestmark = pytest.mark.anyio

NOW = WEDNESDAY


@pytest.fixture
def checker(tasks, users, logs, channels) -> UrgentReminderChecker:
    logs.clock = lambda: NOW
    return UrgentReminderChecker(tasks, users, logs, channels)


async def test_sends_one_reminder_per_matching_threshold(checker, make_user, make_task, logs, email) -> None:
    user = make_user()
    t24 = make_task(user, NOW + timedelta(hours=24, minutes=20), title="Essay")
    t72 = make_task(user, NOW + timedelta(hours=71, minutes=45), title="Exam prep")
    make_task(user, NOW + timedelta(hours=36))  # between thresholds
    make_task(user, NOW + timedelta(hours=48), status=TaskStatus.COMPLETED)

    assert await checker.check(NOW) == 2

    subjects = [call[1] for call in email.calls]
    assert subjects == [
        'Reminder: "Essay" is due in 24 hours',
        'Reminder: "Exam prep" is due in 72 hours',
    ]
    payloads = [e.entry.payload for e in logs.of_type(NotificationKind.URGENT_ALERT)]
    assert [(p.task_id, p.threshold_hours) for p in payloads] == [(t24.id, 24), (t72.id, 72)]


async def test_window_edges_are_inclusive(checker, make_user, make_task) -> None:
    user = make_user()
    make_task(user, NOW + timedelta(hours=48, minutes=30))
    make_task(user, NOW + timedelta(hours=47, minutes=30))
    make_task(user, NOW + timedelta(hours=48, minutes=31))
    assert await checker.check(NOW) == 2


async def test_next_hourly_run_does_not_resend(checker, make_user, make_task, email) -> None:
    user = make_user()
    make_task(user, NOW + timedelta(hours=24, minutes=25))
    assert await checker.check(NOW) == 1
    # Fifty minutes later the task is still inside the 24h band
    assert await checker.check(NOW + timedelta(minutes=50)) == 0
    assert len(email.calls) == 1


async def test_missing_owner_is_skipped(checker, make_user, make_task, users, email) -> None:
    user = make_user()
    task = make_task(user, NOW + timedelta(hours=24))
    task.user_id = uuid.uuid4()
    assert await checker.check(NOW) == 0
    assert email.calls == []


async def test_failing_task_does_not_stop_others(checker, make_user, make_task, email, logs) -> None:
    from app.modules.notifications.channels import ChannelError

    broken = make_user()
    fine = make_user()
    make_task(broken, NOW + timedelta(hours=24))
    make_task(fine, NOW + timedelta(hours=24))
    email.fail = ChannelError("mailbox full")
    email.fail_for = {broken.email}

    assert await checker.check(NOW) == 1
    assert email.recipients == [fine.email]
    assert len(logs.entries) == 1


async def test_failing_threshold_query_does_not_stop_others(checker, make_user, make_task, tasks) -> None:
    user = make_user()
    make_task(user, NOW + timedelta(hours=72))
    original = tasks.find_due_soon

    async def flaky(threshold_hours, now):
        if threshold_hours == 24:
            raise RuntimeError("db timeout")
        return await original(threshold_hours, now)

    tasks.find_due_soon = flaky
    assert await checker.check(NOW) == 1
