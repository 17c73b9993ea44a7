from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from lms.core.clock import utcnow

CATEGORIES = ("theory", "practice", "project")


@dataclass(frozen=True, slots=True)
class Homework:
    id: UUID
    lesson_id: UUID
    description: str
    category: str = "theory"  # theory|practice|project
    deadline: datetime | None = None
    is_active: bool = True
    points: int = 10
    created_at: datetime | None = None

    @staticmethod
    def new(
        *,
        lesson_id: UUID,
        description: str,
        category: str = "theory",
        deadline: datetime | None = None,
        points: int = 10,
    ) -> Homework:
        return Homework(
            id=uuid4(),
            lesson_id=lesson_id,
            description=description,
            category=category,
            deadline=deadline,
            points=points,
            created_at=utcnow(),
        )


@dataclass(frozen=True, slots=True)
class Submission:
    id: UUID
    homework_id: UUID
    student_id: UUID
    content: str
    grade: int | None = None
    teacher_comment: str | None = None
    is_reviewed: bool = False
    created_at: datetime | None = None

    @staticmethod
    def new(*, homework_id: UUID, student_id: UUID, content: str) -> Submission:
        return Submission(
            id=uuid4(),
            homework_id=homework_id,
            student_id=student_id,
            content=content,
            created_at=utcnow(),
        )
