"""Outbound notification channels.

Each channel knows how to find a user's address for itself and how to
push one message there.  The dispatcher in notifications_service.py
iterates the configured channels uniformly; a channel raises
ChannelError on failure and the dispatcher isolates it.

  email      SMTP (stdlib smtplib, run in a worker thread)
  telegram   python-telegram-bot Bot.send_message
  sms        sms.ru-compatible HTTP gateway via httpx
  websocket  in-process ConnectionManager push
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol, runtime_checkable
from uuid import UUID

import httpx
from telegram import Bot
from telegram.error import TelegramError

from lms.core.config import Settings
from lms.models.user import User
from lms.services.errors import ChannelError
from lms.services.realtime import ConnectionManager, user_room

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    body: str
    title: str | None = None
    notification_id: UUID | None = None

    def as_text(self) -> str:
        return f"{self.title}\n\n{self.body}" if self.title else self.body


@runtime_checkable
class NotificationChannel(Protocol):
    name: str

    def address_for(self, user: User) -> str | None:
        """Where this channel reaches the user, or None if it cannot."""
        ...

    async def send(self, target: str, message: OutboundMessage) -> None:
        """Deliver one message.  Raises ChannelError on failure."""
        ...


class EmailChannel:
    name = "email"

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password

    def address_for(self, user: User) -> str | None:
        return user.email or None

    async def send(self, target: str, message: OutboundMessage) -> None:
        msg = EmailMessage()
        msg["From"] = self._sender
        msg["To"] = target
        msg["Subject"] = message.title or "Notification"
        msg.set_content(message.body)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise ChannelError(self.name, str(exc)) from exc

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=10) as smtp:
            if self._username:
                smtp.starttls()
                smtp.login(self._username, self._password or "")
            smtp.send_message(msg)


class TelegramChannel:
    name = "telegram"

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    def address_for(self, user: User) -> str | None:
        return user.telegram_id

    async def send(self, target: str, message: OutboundMessage) -> None:
        try:
            await self._bot.send_message(chat_id=target, text=message.as_text())
        except TelegramError as exc:
            raise ChannelError(self.name, str(exc)) from exc


class SmsChannel:
    name = "sms"

    def __init__(
        self, *, api_key: str, url: str, client: httpx.AsyncClient | None = None
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._client = client or httpx.AsyncClient(timeout=10.0)

    def address_for(self, user: User) -> str | None:
        return user.phone

    async def send(self, target: str, message: OutboundMessage) -> None:
        params = {
            "api_id": self._api_key,
            "to": target,
            "text": message.as_text(),
            "json": 1,
        }
        try:
            response = await self._client.get(self._url, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ChannelError(self.name, str(exc)) from exc
        if data.get("status") != "OK":
            raise ChannelError(self.name, f"gateway rejected message: {data}")

    async def aclose(self) -> None:
        await self._client.aclose()


class WebSocketChannel:
    """Pushes to the user's room.  Offline users are not a failure:
    the persisted record is what they will see on reconnect."""

    name = "websocket"

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager

    def address_for(self, user: User) -> str | None:
        return str(user.id)

    async def send(self, target: str, message: OutboundMessage) -> None:
        payload = {
            "id": str(message.notification_id) if message.notification_id else None,
            "title": message.title,
            "message": message.body,
        }
        delivered = await self._manager.publish(
            user_room(target), "notification", payload
        )
        logger.debug("WebSocket push user=%s sockets=%d", target, delivered)


def build_channels(
    settings: Settings, manager: ConnectionManager
) -> list[NotificationChannel]:
    """Channels available in this deployment.  WebSocket is always on."""
    channels: list[NotificationChannel] = []
    if settings.email_configured:
        channels.append(
            EmailChannel(
                host=settings.smtp_host or "",
                port=settings.smtp_port,
                sender=settings.smtp_from,
                username=settings.smtp_user,
                password=settings.smtp_password,
            )
        )
    if settings.telegram_configured:
        channels.append(TelegramChannel(Bot(token=settings.telegram_bot_token or "")))
    if settings.sms_configured:
        channels.append(
            SmsChannel(api_key=settings.sms_api_key or "", url=settings.sms_api_url)
        )
    channels.append(WebSocketChannel(manager))
    logger.info("Notification channels: %s", [c.name for c in channels])
    return channels
