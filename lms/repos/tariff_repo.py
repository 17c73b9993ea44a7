from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.tariff import Tariff
from lms.repos.base import InMemoryRepo


class TariffRepo(Protocol):
    async def get(self, tariff_id: UUID) -> Tariff | None: ...
    async def add(self, tariff: Tariff) -> None: ...
    async def save(self, tariff: Tariff) -> Tariff: ...
    async def delete(self, tariff_id: UUID) -> bool: ...
    async def list_all(self) -> list[Tariff]: ...
    async def list_by_course(self, course_id: UUID) -> list[Tariff]: ...


class InMemoryTariffRepo(InMemoryRepo[Tariff]):
    async def list_by_course(self, course_id: UUID) -> list[Tariff]:
        return self._where(lambda t: t.course_id == course_id)
