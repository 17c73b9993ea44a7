from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID, uuid4

from lms.core.clock import utcnow

ROLES = frozenset({"student", "teacher", "admin", "manager", "assistant"})

# Per-channel switches a caller may override for a single notification
CHANNEL_FLAGS = ("email", "telegram", "sms", "websocket")


@dataclass(frozen=True, slots=True)
class UserSettings:
    notifications: bool = True
    email: bool = True
    telegram: bool = True
    sms: bool = False
    websocket: bool = True
    language: str = "en"

    def merged(self, override: Mapping[str, bool] | None) -> UserSettings:
        """Return these preferences with explicit per-call flags applied."""
        if not override:
            return self
        changes = {
            k: bool(v)
            for k, v in override.items()
            if v is not None and (k in CHANNEL_FLAGS or k == "notifications")
        }
        return replace(self, **changes)

    def allows(self, channel: str) -> bool:
        return self.notifications and bool(getattr(self, channel, False))


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    password_hash: str
    name: str = ""
    roles: tuple[str, ...] = ("student",)
    is_active: bool = True
    phone: str | None = None
    telegram_id: str | None = None
    groups: tuple[UUID, ...] = ()
    settings: UserSettings = UserSettings()
    created_at: datetime | None = None

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        name: str = "",
        roles: tuple[str, ...] = ("student",),
        phone: str | None = None,
        telegram_id: str | None = None,
    ) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            password_hash=password_hash,
            name=name.strip(),
            roles=roles,
            phone=phone,
            telegram_id=telegram_id,
            created_at=utcnow(),
        )

    def has_role(self, role: str) -> bool:
        return role in self.roles
