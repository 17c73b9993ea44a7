"""Common plumbing for the PostgreSQL repositories.

Every operation opens its own session from the factory and commits
before returning, so one repo call is one transaction.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lms.repos.base import DuplicateKeyError

T = TypeVar("T")


class PgRepo(Generic[T]):
    row_cls: Any
    order_by: Any = None

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    def _to_model(self, row: Any) -> T:
        raise NotImplementedError

    def _to_row(self, entity: T) -> Any:
        raise NotImplementedError

    async def get(self, entity_id: UUID) -> T | None:
        async with self._sessions() as session:
            row = await session.get(self.row_cls, entity_id)
            return None if row is None else self._to_model(row)

    async def add(self, entity: T) -> None:
        async with self._sessions() as session:
            session.add(self._to_row(entity))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateKeyError(str(exc.orig)) from None

    async def save(self, entity: T) -> T:
        async with self._sessions() as session:
            await session.merge(self._to_row(entity))
            await session.commit()
        return entity

    async def delete(self, entity_id: UUID) -> bool:
        async with self._sessions() as session:
            result = await session.execute(
                delete(self.row_cls).where(self.row_cls.id == entity_id)
            )
            await session.commit()
            return result.rowcount > 0

    async def list_all(self) -> list[T]:
        return await self._select(self._ordered(select(self.row_cls)))

    async def count(self) -> int:
        return await self._count(select(func.count()).select_from(self.row_cls))

    async def page(
        self, *, offset: int, limit: int, **equals: Any
    ) -> tuple[list[T], int]:
        conditions = [
            getattr(self.row_cls, k) == v for k, v in equals.items() if v is not None
        ]
        return await self._page(conditions, offset=offset, limit=limit)

    # --- helpers for subclasses ---

    def _ordered(self, stmt: Select) -> Select:
        if self.order_by is not None:
            return stmt.order_by(self.order_by)
        return stmt

    async def _page(
        self, conditions: list[Any], *, offset: int, limit: int
    ) -> tuple[list[T], int]:
        total = await self._count(
            select(func.count()).select_from(self.row_cls).where(*conditions)
        )
        stmt = self._ordered(select(self.row_cls).where(*conditions))
        items = await self._select(stmt.offset(offset).limit(limit))
        return items, total

    async def _select(self, stmt: Select) -> list[T]:
        async with self._sessions() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [self._to_model(r) for r in rows]

    async def _select_one(self, stmt: Select) -> T | None:
        async with self._sessions() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return None if row is None else self._to_model(row)

    async def _count(self, stmt: Select) -> int:
        async with self._sessions() as session:
            return int((await session.execute(stmt)).scalar_one())

    async def _update_returning(self, stmt: Any) -> T | None:
        """Run an UPDATE ... RETURNING <row> and map the single result."""
        async with self._sessions() as session:
            result = await session.execute(
                stmt.execution_options(synchronize_session=False)
            )
            row = result.scalar_one_or_none()
            entity = None if row is None else self._to_model(row)
            await session.commit()
            return entity
