from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Tariff:
    id: UUID
    course_id: UUID
    name: str
    price: float
    accessible_modules: tuple[UUID, ...] = ()
    includes_homeworks: bool = False
    includes_points: bool = False

    @staticmethod
    def new(
        *,
        course_id: UUID,
        name: str,
        price: float,
        accessible_modules: tuple[UUID, ...] = (),
        includes_homeworks: bool = False,
        includes_points: bool = False,
    ) -> Tariff:
        return Tariff(
            id=uuid4(),
            course_id=course_id,
            name=name,
            price=price,
            accessible_modules=accessible_modules,
            includes_homeworks=includes_homeworks,
            includes_points=includes_points,
        )
