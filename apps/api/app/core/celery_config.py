"""Celery queue topology: exchanges, queues, task routing, and per-task limits."""

from kombu import Exchange, Queue  # type: ignore[import-untyped]

# ── Exchanges ─────────────────────────────────────────────────────────────────

default_exchange = Exchange("default", type="direct")
notifications_exchange = Exchange("notifications", type="direct")

# ── Queues ────────────────────────────────────────────────────────────────────

CELERY_QUEUES = (
    # Default: anything not routed explicitly
    Queue("default", default_exchange, routing_key="default"),
    # Notifications: the hourly scheduler run, kept apart from other work
    Queue("notifications", notifications_exchange, routing_key="notifications"),
)

# ── Task routing ──────────────────────────────────────────────────────────────

CELERY_TASK_ROUTES: dict[str, dict] = {
    "tasks.run_scheduled_notifications":    {"queue": "notifications"},
    "tasks.check_task_reminders":           {"queue": "notifications"},
}

# ── Per-task rate limits and time limits ──────────────────────────────────────

CELERY_TASK_ANNOTATIONS: dict[str, dict] = {
    # A run must finish well inside the hour before the next beat fires
    "tasks.run_scheduled_notifications": {
        "time_limit": 1800,
        "soft_time_limit": 1740,
    },
    "tasks.check_task_reminders": {
        "time_limit": 300,
        "soft_time_limit": 270,
    },
}
