"""PostgreSQL implementation of NotificationRepo."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import or_, select, update

from lms.db.tables import NotificationRow
from lms.models.notification import Notification
from lms.repos.pg_base import PgRepo


class PgNotificationRepo(PgRepo[Notification]):
    row_cls = NotificationRow
    order_by = NotificationRow.created_at.desc()

    def _to_model(self, row: NotificationRow) -> Notification:
        return _row_to_notification(row)

    def _to_row(self, n: Notification) -> NotificationRow:
        return NotificationRow(
            id=n.id,
            title=n.title,
            message=n.message,
            key=n.key,
            user_id=n.user_id,
            recipients=list(n.recipients),
            is_read=n.is_read,
            is_sent=n.is_sent,
            sent_at=n.sent_at,
            created_at=n.created_at,
        )

    async def recent(self, limit: int) -> list[Notification]:
        stmt = (
            select(NotificationRow)
            .where(NotificationRow.key.is_(None))
            .order_by(NotificationRow.created_at.desc())
            .limit(limit)
        )
        return await self._select(stmt)

    async def list_for_user(self, user_id: UUID) -> list[Notification]:
        stmt = select(NotificationRow).where(
            or_(
                NotificationRow.user_id == user_id,
                NotificationRow.recipients.any(user_id),
            )
        )
        return await self._select(self._ordered(stmt))

    async def get_template(self, key: str) -> Notification | None:
        return await self._select_one(
            select(NotificationRow).where(NotificationRow.key == key)
        )

    async def list_templates(self) -> list[Notification]:
        return await self._select(
            select(NotificationRow).where(NotificationRow.key.is_not(None))
        )

    async def mark_sent(
        self, notification_id: UUID, sent_at: datetime
    ) -> Notification | None:
        stmt = (
            update(NotificationRow)
            .where(NotificationRow.id == notification_id)
            .values(is_sent=True, sent_at=sent_at)
            .returning(NotificationRow)
        )
        return await self._update_returning(stmt)

    async def mark_read(self, notification_id: UUID) -> Notification | None:
        stmt = (
            update(NotificationRow)
            .where(NotificationRow.id == notification_id)
            .values(is_read=True)
            .returning(NotificationRow)
        )
        return await self._update_returning(stmt)


def _row_to_notification(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        title=row.title,
        message=row.message,
        key=row.key,
        user_id=row.user_id,
        recipients=tuple(row.recipients or ()),
        is_read=row.is_read,
        is_sent=row.is_sent,
        sent_at=row.sent_at,
        created_at=row.created_at,
    )
