from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import fields, replace
from uuid import UUID

from lms.models.user import ROLES, User, UserSettings
from lms.repos.base import DuplicateKeyError
from lms.repos.user_repo import UserRepo
from lms.services.auth_service import check_password, hash_password
from lms.services.errors import EmailAlreadyExists, UserNotFound, ValidationFailed
from lms.services.ids import parse_id

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SETTING_NAMES = frozenset(f.name for f in fields(UserSettings))


def _check_roles(roles: Iterable[str]) -> tuple[str, ...]:
    roles = tuple(dict.fromkeys(roles))
    if not roles:
        raise ValidationFailed("at least one role is required")
    unknown = set(roles) - ROLES
    if unknown:
        raise ValidationFailed(f"unknown role(s): {', '.join(sorted(unknown))}")
    return roles


class UserService:
    def __init__(self, *, users: UserRepo) -> None:
        self._users = users

    async def create_user(
        self,
        *,
        email: str,
        password: str,
        name: str = "",
        roles: Iterable[str] = ("student",),
        phone: str | None = None,
        telegram_id: str | None = None,
    ) -> User:
        email = email.strip().lower()
        if not _EMAIL.match(email):
            logger.warning("Rejected invalid email=%s", email)
            raise ValidationFailed("invalid email address")
        check_password(password)
        checked_roles = _check_roles(roles)

        if await self._users.get_by_email(email) is not None:
            logger.warning("Rejected duplicate email=%s", email)
            raise EmailAlreadyExists("a user with this email already exists")

        user = User.new(
            email=email,
            password_hash=hash_password(password),
            name=name,
            roles=checked_roles,
            phone=phone,
            telegram_id=telegram_id,
        )
        try:
            await self._users.add(user)
        except DuplicateKeyError:
            # Lost a race with a concurrent signup for the same email
            raise EmailAlreadyExists("a user with this email already exists") from None
        logger.info("Created user id=%s email=%s", user.id, user.email)
        return user

    async def get_user(self, user_id: str | UUID) -> User:
        uid = parse_id(user_id, "user_id")
        user = await self._users.get(uid)
        if user is None:
            raise UserNotFound(uid)
        return user

    async def list_users(self, role: str | None = None) -> list[User]:
        if role is None:
            return await self._users.list_all()
        users, _ = await self._users.search(
            role=role, email=None, offset=0, limit=10_000
        )
        return users

    async def update_user(
        self,
        user_id: str | UUID,
        *,
        name: str | None = None,
        phone: str | None = None,
        is_active: bool | None = None,
    ) -> User:
        user = await self.get_user(user_id)
        return await self._users.save(
            replace(
                user,
                name=name.strip() if name is not None else user.name,
                phone=phone if phone is not None else user.phone,
                is_active=is_active if is_active is not None else user.is_active,
            )
        )

    async def update_settings(
        self, user_id: str | UUID, changes: Mapping[str, object]
    ) -> User:
        """Apply notification preference changes (channel flags, language)."""
        user = await self.get_user(user_id)
        unknown = set(changes) - _SETTING_NAMES
        if unknown:
            raise ValidationFailed(f"unknown setting(s): {', '.join(sorted(unknown))}")
        settings = replace(
            user.settings, **{k: v for k, v in changes.items() if v is not None}
        )
        updated = await self._users.save(replace(user, settings=settings))
        logger.info("Updated notification settings for user=%s", user.id)
        return updated

    async def connect_telegram(self, user_id: str | UUID, telegram_id: str) -> User:
        user = await self.get_user(user_id)
        telegram_id = telegram_id.strip()
        if not telegram_id:
            raise ValidationFailed("telegram_id must not be empty")
        updated = await self._users.save(
            replace(
                user,
                telegram_id=telegram_id,
                settings=replace(user.settings, telegram=True),
            )
        )
        logger.info("Connected Telegram for user=%s", user.id)
        return updated

    async def set_roles(self, user_id: str | UUID, roles: Iterable[str]) -> User:
        user = await self.get_user(user_id)
        updated = await self._users.save(replace(user, roles=_check_roles(roles)))
        logger.info("Roles of user=%s set to %s", user.id, ",".join(updated.roles))
        return updated

    async def delete_user(self, user_id: str | UUID) -> None:
        user = await self.get_user(user_id)
        await self._users.delete(user.id)
        logger.info("Deleted user id=%s", user.id)
