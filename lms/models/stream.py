from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Stream:
    """A dated cohort of one course."""

    id: UUID
    course_id: UUID
    name: str
    start_date: datetime
    end_date: datetime
    students: tuple[UUID, ...] = ()

    @staticmethod
    def new(
        *, course_id: UUID, name: str, start_date: datetime, end_date: datetime
    ) -> Stream:
        return Stream(
            id=uuid4(),
            course_id=course_id,
            name=name,
            start_date=start_date,
            end_date=end_date,
        )
