"""Shared pieces of the repository layer.

Each entity has a Protocol (what services depend on), a dict-backed
in-memory implementation used by tests and local development, and a
PostgreSQL implementation in the matching pg_*.py module.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar
from uuid import UUID

T = TypeVar("T")


class DuplicateKeyError(ValueError):
    """A uniqueness constraint rejected the write."""


class InMemoryRepo(Generic[T]):
    """Dict keyed by entity id.  Insertion order doubles as list order."""

    def __init__(self) -> None:
        self._rows: dict[UUID, T] = {}

    async def get(self, entity_id: UUID) -> T | None:
        return self._rows.get(entity_id)

    async def add(self, entity: T) -> None:
        entity_id = entity.id  # type: ignore[attr-defined]
        if entity_id in self._rows:
            raise DuplicateKeyError(f"duplicate id {entity_id}")
        self._rows[entity_id] = entity

    async def save(self, entity: T) -> T:
        self._rows[entity.id] = entity  # type: ignore[attr-defined]
        return entity

    async def delete(self, entity_id: UUID) -> bool:
        return self._rows.pop(entity_id, None) is not None

    async def list_all(self) -> list[T]:
        return list(self._rows.values())

    async def count(self) -> int:
        return len(self._rows)

    async def page(
        self, *, offset: int, limit: int, **equals: Any
    ) -> tuple[list[T], int]:
        """Equality-filtered slice plus the total match count (None = no filter)."""
        wanted = {k: v for k, v in equals.items() if v is not None}
        rows = self._where(
            lambda r: all(getattr(r, k) == v for k, v in wanted.items())
        )
        return rows[offset : offset + limit], len(rows)

    def _where(self, predicate: Callable[[T], bool]) -> list[T]:
        return [r for r in self._rows.values() if predicate(r)]
