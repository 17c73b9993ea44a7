"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from sqlalchemy import select

from lms.db.tables import UserRow
from lms.models.user import User, UserSettings
from lms.repos.pg_base import PgRepo


class PgUserRepo(PgRepo[User]):
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    row_cls = UserRow
    order_by = UserRow.created_at

    def _to_model(self, row: UserRow) -> User:
        return _row_to_user(row)

    def _to_row(self, user: User) -> UserRow:
        return UserRow(
            id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            name=user.name,
            roles=list(user.roles),
            is_active=user.is_active,
            phone=user.phone,
            telegram_id=user.telegram_id,
            groups=list(user.groups),
            settings=asdict(user.settings),
            created_at=user.created_at,
        )

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email.strip().lower())
        return await self._select_one(stmt)

    async def get_many(self, user_ids: list[UUID]) -> list[User]:
        if not user_ids:
            return []
        return await self._select(select(UserRow).where(UserRow.id.in_(user_ids)))

    async def search(
        self, *, role: str | None, email: str | None, offset: int, limit: int
    ) -> tuple[list[User], int]:
        conditions = []
        if role is not None:
            conditions.append(UserRow.roles.any(role))
        if email:
            conditions.append(UserRow.email.ilike(f"%{email}%"))
        return await self._page(conditions, offset=offset, limit=limit)


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        name=row.name or "",
        roles=tuple(row.roles) if row.roles else (),
        is_active=row.is_active,
        phone=row.phone,
        telegram_id=row.telegram_id,
        groups=tuple(row.groups or ()),
        settings=UserSettings(**(row.settings or {})),
        created_at=row.created_at,
    )
