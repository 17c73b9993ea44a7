from __future__ import annotations

import logging
import secrets
from dataclasses import replace

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from lms.models.user import User
from lms.repos.user_repo import UserRepo
from lms.services.cache import CacheService
from lms.services.channels import NotificationChannel, OutboundMessage
from lms.services.errors import AuthenticationFailed, ChannelError, ValidationFailed
from lms.services.ids import parse_id

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()

RESET_TOKEN_TTL_SECONDS = 3600


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


MIN_PASSWORD_LENGTH = 8


def check_password(plain_password: str) -> None:
    if len(plain_password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def _reset_key(token: str) -> str:
    return f"password_reset:{token}"


class AuthService:
    def __init__(
        self,
        *,
        users: UserRepo,
        cache: CacheService,
        mailer: NotificationChannel | None = None,
    ) -> None:
        self._users = users
        self._cache = cache
        self._mailer = mailer

    async def authenticate(self, email: str, password: str) -> User:
        user = await self._users.get_by_email(email)
        if user is None or not user.is_active:
            raise AuthenticationFailed("invalid email or password")
        if not verify_password(password, user.password_hash):
            raise AuthenticationFailed("invalid email or password")

        # Upgrade the stored hash when the hasher parameters changed
        if _ph.check_needs_rehash(user.password_hash):
            await self._users.save(replace(user, password_hash=_ph.hash(password)))
            logger.info("Rehashed password for user=%s", user.id)
        return user

    async def forgot_password(self, email: str) -> str | None:
        """Issue a one-hour reset token and mail it when email is configured.

        Unknown addresses return None without an error so the endpoint
        does not reveal which emails are registered.
        """
        user = await self._users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None

        token = secrets.token_urlsafe(32)
        await self._cache.set(_reset_key(token), str(user.id), RESET_TOKEN_TTL_SECONDS)

        if self._mailer is None:
            logger.warning("Email channel not configured; reset token not sent")
            return token
        try:
            await self._mailer.send(
                user.email,
                OutboundMessage(
                    title="Password reset",
                    body=(
                        "Use this token to reset your password within one hour: "
                        f"{token}"
                    ),
                ),
            )
        except ChannelError as exc:
            logger.warning("Reset email to user=%s failed: %s", user.id, exc.reason)
        return token

    async def reset_password(self, token: str, new_password: str) -> User:
        user_id = await self._cache.get(_reset_key(token))
        if user_id is None:
            raise AuthenticationFailed("invalid or expired reset token")
        check_password(new_password)

        user = await self._users.get(parse_id(user_id, "user_id"))
        if user is None:
            raise AuthenticationFailed("invalid or expired reset token")
        updated = await self._users.save(
            replace(user, password_hash=hash_password(new_password))
        )
        await self._cache.delete(_reset_key(token))
        logger.info("Password reset for user=%s", updated.id)
        return updated
