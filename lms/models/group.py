from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Group:
    id: UUID
    name: str
    description: str = ""
    students: tuple[UUID, ...] = ()

    @staticmethod
    def new(*, name: str, description: str = "") -> Group:
        return Group(id=uuid4(), name=name, description=description)
