from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from lms.core.clock import utcnow


@dataclass(frozen=True, slots=True)
class Enrollment:
    """A student's membership in a course plus their completion state.

    completed_modules / completed_lessons only ever grow, points only
    increase, and grade is set together with is_completed.
    """

    id: UUID
    student_id: UUID
    course_id: UUID
    stream_id: UUID | None = None
    tariff_id: UUID | None = None
    completed_modules: frozenset[UUID] = frozenset()
    completed_lessons: frozenset[UUID] = frozenset()
    is_completed: bool = False
    grade: float | None = None
    deadline: datetime | None = None
    points: int = 0
    enrolled_at: datetime | None = None

    @staticmethod
    def new(
        *,
        student_id: UUID,
        course_id: UUID,
        stream_id: UUID | None = None,
        tariff_id: UUID | None = None,
        deadline: datetime | None = None,
    ) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            student_id=student_id,
            course_id=course_id,
            stream_id=stream_id,
            tariff_id=tariff_id,
            deadline=deadline,
            enrolled_at=utcnow(),
        )
