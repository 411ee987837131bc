"""Calendar window helpers for the notification scheduler.

All helpers keep the tzinfo of the instant they receive, so boundaries are
wall-clock midnights in whichever zone the caller resolved ``now`` into.
"""

from __future__ import annotations

from datetime import datetime, timedelta


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime) -> datetime:
    """Most recent Monday at 00:00 (ISO week start). Sunday goes back 6 days."""
    return start_of_day(now) - timedelta(days=now.weekday())


def end_of_week(week_start: datetime) -> datetime:
    return week_start + timedelta(days=6)


def start_of_month(now: datetime) -> datetime:
    return start_of_day(now).replace(day=1)


def start_of_next_month(now: datetime) -> datetime:
    first = start_of_month(now)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)
