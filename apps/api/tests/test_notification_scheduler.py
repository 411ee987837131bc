"""Tests for the scheduler orchestrator and its summary contract."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.models.enums import NotificationKind
from app.modules.notifications.scheduler import NotificationScheduler, is_calendar_day, should_run
from app.modules.notifications.schemas import SchedulerRunOptions

from conftest import FIRST_OF_MONTH, MONDAY, WEDNESDAY

pytestmark = pytest.mark.anyio


def test_weekly_calendar_is_monday() -> None:
    assert is_calendar_day(NotificationKind.WEEKLY_REPORT, MONDAY) is True
    assert is_calendar_day(NotificationKind.WEEKLY_REPORT, WEDNESDAY) is False


def test_monthly_calendar_is_first_of_month() -> None:
    assert is_calendar_day(NotificationKind.MONTHLY_REPORT, FIRST_OF_MONTH) is True
    assert is_calendar_day(NotificationKind.MONTHLY_REPORT, MONDAY) is False


def test_daily_and_urgent_have_no_calendar() -> None:
    with pytest.raises(ValueError):
        is_calendar_day(NotificationKind.DAILY_PENDING_TASKS, MONDAY)
    with pytest.raises(ValueError):
        is_calendar_day(NotificationKind.URGENT_ALERT, MONDAY)


def test_should_run_follows_calendar_without_override() -> None:
    assert should_run(NotificationKind.WEEKLY_REPORT, MONDAY, None) is True
    assert should_run(NotificationKind.WEEKLY_REPORT, WEDNESDAY, None) is False
    assert should_run(NotificationKind.MONTHLY_REPORT, FIRST_OF_MONTH, None) is True


def test_should_run_override_wins() -> None:
    assert should_run(NotificationKind.WEEKLY_REPORT, WEDNESDAY, True) is True
    assert should_run(NotificationKind.MONTHLY_REPORT, FIRST_OF_MONTH, False) is False


async def test_wednesday_runs_daily_only(scheduler, make_user, make_task) -> None:
    user = make_user()
    make_task(user, WEDNESDAY + timedelta(days=1))

    summary = await scheduler.run(WEDNESDAY)

    assert summary.daily is not None
    assert summary.daily.sent == 1
    assert summary.weekly is None
    assert summary.monthly is None


async def test_force_weekly_on_wednesday(scheduler, make_user, make_task) -> None:
    user = make_user()
    make_task(user, WEDNESDAY + timedelta(days=1))

    summary = await scheduler.run(WEDNESDAY, SchedulerRunOptions(force_weekly=True))

    assert summary.weekly is not None
    assert summary.weekly.attempted == 1


async def test_monday_runs_weekly(scheduler, make_user) -> None:
    make_user()
    summary = await scheduler.run(MONDAY)
    assert summary.weekly is not None
    assert summary.weekly.skipped_empty == 1
    assert summary.monthly is None


async def test_force_weekly_false_on_monday_skips(scheduler, make_user) -> None:
    make_user()
    summary = await scheduler.run(MONDAY, SchedulerRunOptions(force_weekly=False))
    assert summary.weekly is None


async def test_first_of_month_runs_monthly(scheduler, make_user) -> None:
    make_user()
    summary = await scheduler.run(FIRST_OF_MONTH)
    assert summary.monthly is not None
    assert summary.monthly.attempted == 1


async def test_skip_daily_omits_key(scheduler, make_user) -> None:
    make_user()
    summary = await scheduler.run(WEDNESDAY, SchedulerRunOptions(skip_daily=True))
    data = summary.as_dict()
    assert "daily" not in data
    assert data["weekly"] is None
    assert data["monthly"] is None


async def test_summary_wire_shape(scheduler, make_user, make_task) -> None:
    user = make_user()
    make_task(user, WEDNESDAY + timedelta(days=1))

    data = (await scheduler.run(WEDNESDAY)).as_dict()

    assert data["executedAt"].startswith("2025-10-15T09:00:00")
    assert data["daily"] == {
        "attempted": 1,
        "sent": 1,
        "skippedNoTasks": 0,
        "skippedDuplicate": 0,
        "errors": 0,
    }


async def test_urgent_check_always_runs(scheduler, make_user, make_task, email, logs) -> None:
    user = make_user()
    make_task(user, WEDNESDAY + timedelta(hours=24))
    await scheduler.run(WEDNESDAY, SchedulerRunOptions(skip_daily=True))
    assert email.calls[0][1].endswith("is due in 24 hours")


async def test_urgent_failure_does_not_abort_run(scheduler, make_user, make_task) -> None:
    async def boom(now):
        raise RuntimeError("unexpected")

    scheduler.urgent.check = boom
    user = make_user()
    make_task(user, WEDNESDAY + timedelta(days=1))

    summary = await scheduler.run(WEDNESDAY)
    assert summary.daily.sent == 1


async def test_force_daily_resends(scheduler, make_user, make_task) -> None:
    user = make_user()
    make_task(user, WEDNESDAY + timedelta(days=3))
    scheduler.daily.logs.clock = lambda: WEDNESDAY

    await scheduler.run(WEDNESDAY)
    again = await scheduler.run(WEDNESDAY + timedelta(hours=1))
    forced = await scheduler.run(
        WEDNESDAY + timedelta(hours=2), SchedulerRunOptions(force_daily=True)
    )

    assert again.daily.skipped_duplicate == 1
    assert forced.daily.sent == 1


async def test_calendar_is_evaluated_in_notification_timezone(tasks, users, logs, channels, make_user) -> None:
    make_user()
    tz = ZoneInfo("America/Sao_Paulo")
    scheduler = NotificationScheduler(tasks, users, logs, channels, tz=tz)
    # Monday 01:00 UTC is still Sunday evening in São Paulo
    monday_utc = datetime(2025, 10, 13, 1, 0, tzinfo=timezone.utc)

    summary = await scheduler.run(monday_utc)

    assert summary.weekly is None
    assert summary.executed_at.utcoffset() == timedelta(hours=-3)


async def test_clock_is_used_when_now_is_omitted(tasks, users, logs, channels) -> None:
    scheduler = NotificationScheduler(
        tasks, users, logs, channels, clock=lambda: MONDAY, tz=timezone.utc
    )
    summary = await scheduler.run()
    assert summary.executed_at == MONDAY
    assert summary.weekly is not None
