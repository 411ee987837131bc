"""Message rendering: Jinja2 HTML emails and short chat texts."""

from __future__ import annotations

import html
import os
from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from jinja2 import Environment, FileSystemLoader

from app.core.config import settings
from app.modules.notifications.digest import DigestItem

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "templates", "email")


@lru_cache(maxsize=1)
def _environment() -> Environment:
    env = Environment(loader=FileSystemLoader(TEMPLATES_DIR), autoescape=True)
    env.filters["percent"] = lambda value: f"{round(value * 100)}%"
    return env


def dashboard_url() -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/dashboard"


def render_email(template_name: str, **context: Any) -> str:
    """Render ``app/templates/email/<template_name>`` with the dashboard link injected."""
    template = _environment().get_template(template_name)
    return template.render(dashboard_url=dashboard_url(), **context)


def daily_digest_text(
    items: Sequence[DigestItem],
    highlights: Sequence[DigestItem],
    escape_html: bool = False,
) -> str:
    """Short chat summary: pending count plus the highlighted titles.

    Telegram messages are sent with HTML parse mode, so titles are escaped
    there; WhatsApp gets the plain text.
    """

    def fmt(value: str) -> str:
        return html.escape(value) if escape_html else value

    noun = "task" if len(items) == 1 else "tasks"
    lines = [f"You have {len(items)} pending {noun}."]
    if highlights:
        lines.append("")
        lines.append("Today's priorities:")
        for item in highlights:
            lines.append(f"- {fmt(item.title)} ({fmt(item.subject)}): {item.status_label}")
    lines.append("")
    lines.append(dashboard_url())
    return "\n".join(lines)
