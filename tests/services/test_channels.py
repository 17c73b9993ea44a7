from __future__ import annotations

import asyncio
from dataclasses import replace

import httpx
import pytest

from lms.core.config import load_settings
from lms.models.user import User
from lms.services.channels import (
    EmailChannel,
    OutboundMessage,
    SmsChannel,
    TelegramChannel,
    WebSocketChannel,
    build_channels,
)
from lms.services.errors import ChannelError
from lms.services.realtime import ConnectionManager, user_room

_USER = User.new(email="Ada@Example.com", password_hash="x", phone="+15550001")


def _sms(handler) -> SmsChannel:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SmsChannel(api_key="key", url="https://sms.test/send", client=client)


def test_outbound_text_includes_title() -> None:
    assert OutboundMessage(body="b", title="T").as_text() == "T\n\nb"
    assert OutboundMessage(body="b").as_text() == "b"


def test_addresses_come_from_the_user() -> None:
    manager = ConnectionManager()
    assert EmailChannel(host="h", port=25, sender="s").address_for(_USER) == (
        "ada@example.com"
    )
    assert _sms(lambda r: httpx.Response(200)).address_for(_USER) == "+15550001"
    assert WebSocketChannel(manager).address_for(_USER) == str(_USER.id)
    telegram = TelegramChannel(bot=None)  # type: ignore[arg-type]
    assert telegram.address_for(_USER) is None
    assert telegram.address_for(replace(_USER, telegram_id="4242")) == "4242"


def test_sms_sends_gateway_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "OK"})

    asyncio.run(_sms(handler).send("+15550001", OutboundMessage(body="hi")))
    (request,) = seen
    assert request.url.params["to"] == "+15550001"
    assert request.url.params["text"] == "hi"
    assert request.url.params["api_id"] == "key"


def test_sms_gateway_rejection_raises_channel_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ERROR", "status_code": 200})

    with pytest.raises(ChannelError) as exc_info:
        asyncio.run(_sms(handler).send("+1", OutboundMessage(body="x")))
    assert exc_info.value.channel == "sms"


def test_sms_http_error_raises_channel_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with pytest.raises(ChannelError):
        asyncio.run(_sms(handler).send("+1", OutboundMessage(body="x")))


def test_sms_non_json_body_raises_channel_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>")

    with pytest.raises(ChannelError):
        asyncio.run(_sms(handler).send("+1", OutboundMessage(body="x")))


def test_websocket_channel_publishes_to_user_room() -> None:
    class FakeManager:
        def __init__(self) -> None:
            self.calls: list = []

        async def publish(self, room, event, data):
            self.calls.append((room, event, data))
            return 0

    fake = FakeManager()
    channel = WebSocketChannel(fake)  # type: ignore[arg-type]
    asyncio.run(channel.send("u-1", OutboundMessage(body="b", title="t")))
    ((room, event, data),) = fake.calls
    assert room == user_room("u-1")
    assert event == "notification"
    assert data == {"id": None, "title": "t", "message": "b"}


def test_build_channels_reflects_configuration(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("SMTP_HOST", "")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "")
    monkeypatch.setenv("SMS_API_KEY", "")
    names = [c.name for c in build_channels(load_settings(), ConnectionManager())]
    assert names == ["websocket"]

    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMS_API_KEY", "key")
    names = [c.name for c in build_channels(load_settings(), ConnectionManager())]
    assert names == ["email", "sms", "websocket"]
