from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from lms.core.clock import utcnow


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    description: str = ""
    teacher_id: UUID | None = None
    created_at: datetime | None = None

    @staticmethod
    def new(
        *, title: str, description: str = "", teacher_id: UUID | None = None
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            description=description,
            teacher_id=teacher_id,
            created_at=utcnow(),
        )


@dataclass(frozen=True, slots=True)
class Module:
    id: UUID
    course_id: UUID
    title: str
    position: int = 0

    @staticmethod
    def new(*, course_id: UUID, title: str, position: int = 0) -> Module:
        return Module(id=uuid4(), course_id=course_id, title=title, position=position)


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    module_id: UUID
    title: str
    content: str = ""
    points: int = 1
    position: int = 0

    @staticmethod
    def new(
        *,
        module_id: UUID,
        title: str,
        content: str = "",
        points: int = 1,
        position: int = 0,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            module_id=module_id,
            title=title,
            content=content,
            points=points,
            position=position,
        )
