from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from lms.core.clock import utcnow


@dataclass(frozen=True, slots=True)
class Notification:
    """In-app notification record.

    Addressed either to one user (user_id) or to a list (recipients).
    Records carrying a `key` are message templates and have neither.
    """

    id: UUID
    message: str
    title: str | None = None
    key: str | None = None
    user_id: UUID | None = None
    recipients: tuple[UUID, ...] = ()
    is_read: bool = False
    is_sent: bool = False
    sent_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def is_template(self) -> bool:
        return self.key is not None

    @staticmethod
    def new(
        *,
        message: str,
        title: str | None = None,
        key: str | None = None,
        user_id: UUID | None = None,
        recipients: tuple[UUID, ...] = (),
    ) -> Notification:
        if key is None and (user_id is None) == (not recipients):
            raise ValueError("notification needs exactly one of user_id or recipients")
        return Notification(
            id=uuid4(),
            message=message,
            title=title,
            key=key,
            user_id=user_id,
            recipients=recipients,
            created_at=utcnow(),
        )
