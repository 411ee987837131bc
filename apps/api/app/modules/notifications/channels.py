"""Delivery channels: email (Amazon SES), Telegram Bot API and a WhatsApp webhook.

Each channel exposes a single async ``send`` and raises ``ChannelError`` on
provider or network failure. Runners never inspect settings directly; they
consult the ``ChannelAvailability`` resolved once when the channels are built.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
import httpx
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings

logger = structlog.get_logger()


class ChannelError(RuntimeError):
    """A channel failed to deliver a message."""


class ChannelNotConfiguredError(ChannelError):
    """Required credentials for a channel are missing."""


class EmailChannel(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None: ...


class TelegramChannel(Protocol):
    async def send(self, chat_id: str, text: str, *, plain: bool = False) -> None: ...


class WhatsAppChannel(Protocol):
    async def send(self, to: str, message: str) -> None: ...


# ── Email ─────────────────────────────────────────────────────────────────────


class SesEmailChannel:
    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def sender(self) -> str:
        name = self.settings.EMAIL_FROM_NAME.strip()
        if name:
            return f"{name} <{self.settings.EMAIL_FROM}>"
        return self.settings.EMAIL_FROM

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "ses",
                region_name=self.settings.AWS_SES_REGION,
                aws_access_key_id=self.settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=self.settings.AWS_SECRET_ACCESS_KEY or None,
            )
        return self._client

    async def send(self, to: str, subject: str, html: str) -> None:
        if not self.settings.EMAIL_FROM:
            raise ChannelNotConfiguredError("EMAIL_FROM is not configured")
        if not to:
            raise ChannelError("Email recipient is required")

        client = self._get_client()
        try:
            # boto3 is synchronous; keep the event loop free while SES answers
            await asyncio.to_thread(
                client.send_email,
                Source=self.sender,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Html": {"Data": html, "Charset": "UTF-8"}},
                },
            )
        except (BotoCoreError, ClientError) as exc:
            raise ChannelError(f"SES send failed: {exc}") from exc
        logger.info("email_sent", to=to, subject=subject)


# ── Telegram ──────────────────────────────────────────────────────────────────


class TelegramBotChannel:
    def __init__(
        self,
        token: str,
        api_url: str = "https://api.telegram.org",
        timeout: float = 15.0,
        parse_mode: str | None = "HTML",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token
        self.api_url = api_url
        self.timeout = timeout
        self.parse_mode = parse_mode
        self._transport = transport

    async def send(self, chat_id: str, text: str, *, plain: bool = False) -> None:
        """Post ``text`` to ``chat_id``; ``plain`` sends it without a parse mode."""
        if not self.token:
            raise ChannelNotConfiguredError("TELEGRAM_BOT_TOKEN is not configured")
        if not chat_id:
            raise ChannelError("Telegram chat id is required")
        if not text or not text.strip():
            raise ChannelError("Message text is required")

        url = f"{self.api_url.rstrip('/')}/bot{self.token}/sendMessage"
        body: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "disable_notification": False,
            "disable_web_page_preview": True,
        }
        if self.parse_mode and not plain:
            body["parse_mode"] = self.parse_mode

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=body)
        except httpx.RequestError as exc:
            raise ChannelError(f"Telegram network error: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not resp.is_success or not data.get("ok"):
            description = data.get("description") or resp.reason_phrase or "Unknown error sending Telegram message"
            code = data.get("error_code")
            prefix = f"Telegram API error ({code})" if code else "Telegram API error"
            raise ChannelError(f"{prefix}: {description}")
        logger.info("telegram_sent", chat_id=chat_id)


# ── WhatsApp ──────────────────────────────────────────────────────────────────


class WhatsAppWebhookChannel:
    def __init__(
        self,
        webhook_url: str,
        api_key: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        if self.api_key.strip():
            return {"Authorization": f"Bearer {self.api_key.strip()}"}
        return {}

    async def send(self, to: str, message: str) -> None:
        if not self.webhook_url:
            logger.debug("whatsapp_not_configured_skipping", to=to)
            return
        if not to or not to.strip():
            raise ChannelError("WhatsApp destination number is required")
        if not message or not message.strip():
            raise ChannelError("WhatsApp message is required")

        body = {"to": to, "message": message, "previewUrl": False}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.webhook_url, headers=self._get_headers(), json=body)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ChannelError(
                f"WhatsApp send failed (status {exc.response.status_code}): "
                f"{exc.response.text[:200] or exc.response.reason_phrase}"
            ) from exc
        except httpx.RequestError as exc:
            raise ChannelError(f"WhatsApp network error: {exc}") from exc
        logger.info("whatsapp_sent", to=to)


# ── Bundle ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChannelAvailability:
    email: bool
    telegram: bool
    whatsapp: bool

    @classmethod
    def from_settings(cls, settings: Settings) -> ChannelAvailability:
        return cls(
            email=bool(settings.EMAIL_FROM),
            telegram=bool(settings.TELEGRAM_BOT_TOKEN),
            whatsapp=bool(settings.WHATSAPP_WEBHOOK_URL),
        )


@dataclass(frozen=True)
class NotificationChannels:
    email: EmailChannel
    telegram: TelegramChannel
    whatsapp: WhatsAppChannel
    availability: ChannelAvailability


def build_channels(settings: Settings) -> NotificationChannels:
    return NotificationChannels(
        email=SesEmailChannel(settings),
        telegram=TelegramBotChannel(
            settings.TELEGRAM_BOT_TOKEN,
            api_url=settings.TELEGRAM_API_URL,
            timeout=settings.CHANNEL_TIMEOUT_SECONDS,
        ),
        whatsapp=WhatsAppWebhookChannel(
            settings.WHATSAPP_WEBHOOK_URL,
            api_key=settings.WHATSAPP_API_KEY,
            timeout=settings.CHANNEL_TIMEOUT_SECONDS,
        ),
        availability=ChannelAvailability.from_settings(settings),
    )
