from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import UUID

from lms.models.notification import Notification
from lms.repos.base import DuplicateKeyError, InMemoryRepo


class NotificationRepo(Protocol):
    async def get(self, notification_id: UUID) -> Notification | None: ...
    async def add(self, notification: Notification) -> None: ...
    async def save(self, notification: Notification) -> Notification: ...
    async def delete(self, notification_id: UUID) -> bool: ...
    async def list_all(self) -> list[Notification]: ...
    async def count(self) -> int: ...
    async def page(
        self, *, offset: int, limit: int, **equals: object
    ) -> tuple[list[Notification], int]: ...
    async def recent(self, limit: int) -> list[Notification]: ...
    async def list_for_user(self, user_id: UUID) -> list[Notification]: ...
    async def get_template(self, key: str) -> Notification | None: ...
    async def list_templates(self) -> list[Notification]: ...
    async def mark_sent(
        self, notification_id: UUID, sent_at: datetime
    ) -> Notification | None: ...
    async def mark_read(self, notification_id: UUID) -> Notification | None: ...


class InMemoryNotificationRepo(InMemoryRepo[Notification]):
    async def add(self, notification: Notification) -> None:
        if notification.key is not None and await self.get_template(notification.key):
            raise DuplicateKeyError(f"template key {notification.key!r} exists")
        await super().add(notification)

    async def recent(self, limit: int) -> list[Notification]:
        rows = self._where(lambda n: not n.is_template)
        return list(reversed(rows))[:limit]

    async def list_for_user(self, user_id: UUID) -> list[Notification]:
        rows = self._where(lambda n: n.user_id == user_id or user_id in n.recipients)
        return list(reversed(rows))

    async def get_template(self, key: str) -> Notification | None:
        for n in self._rows.values():
            if n.key == key:
                return n
        return None

    async def list_templates(self) -> list[Notification]:
        return self._where(lambda n: n.is_template)

    async def mark_sent(
        self, notification_id: UUID, sent_at: datetime
    ) -> Notification | None:
        current = self._rows.get(notification_id)
        if current is None:
            return None
        updated = replace(current, is_sent=True, sent_at=sent_at)
        self._rows[notification_id] = updated
        return updated

    async def mark_read(self, notification_id: UUID) -> Notification | None:
        current = self._rows.get(notification_id)
        if current is None:
            return None
        updated = replace(current, is_read=True)
        self._rows[notification_id] = updated
        return updated
