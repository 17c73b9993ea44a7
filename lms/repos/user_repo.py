from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.user import User
from lms.repos.base import DuplicateKeyError, InMemoryRepo


class UserRepo(Protocol):
    async def get(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def get_many(self, user_ids: list[UUID]) -> list[User]: ...
    async def add(self, user: User) -> None: ...
    async def save(self, user: User) -> User: ...
    async def delete(self, user_id: UUID) -> bool: ...
    async def list_all(self) -> list[User]: ...
    async def count(self) -> int: ...
    async def search(
        self, *, role: str | None, email: str | None, offset: int, limit: int
    ) -> tuple[list[User], int]: ...


class InMemoryUserRepo(InMemoryRepo[User]):
    async def get_by_email(self, email: str) -> User | None:
        email = email.strip().lower()
        for user in self._rows.values():
            if user.email == email:
                return user
        return None

    async def get_many(self, user_ids: list[UUID]) -> list[User]:
        return [self._rows[i] for i in user_ids if i in self._rows]

    async def add(self, user: User) -> None:
        if await self.get_by_email(user.email) is not None:
            raise DuplicateKeyError("email already exists")
        await super().add(user)

    async def search(
        self, *, role: str | None, email: str | None, offset: int, limit: int
    ) -> tuple[list[User], int]:
        needle = email.lower() if email else None
        rows = self._where(
            lambda u: (role is None or role in u.roles)
            and (needle is None or needle in u.email)
        )
        return rows[offset : offset + limit], len(rows)
