from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.group import Group
from lms.repos.base import InMemoryRepo


class GroupRepo(Protocol):
    async def get(self, group_id: UUID) -> Group | None: ...
    async def add(self, group: Group) -> None: ...
    async def save(self, group: Group) -> Group: ...
    async def delete(self, group_id: UUID) -> bool: ...
    async def list_all(self) -> list[Group]: ...


class InMemoryGroupRepo(InMemoryRepo[Group]):
    pass
