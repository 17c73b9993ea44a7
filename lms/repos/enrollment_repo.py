from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from lms.models.enrollment import Enrollment
from lms.repos.base import DuplicateKeyError, InMemoryRepo


class EnrollmentRepo(Protocol):
    async def get(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def get_for(self, student_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def delete(self, enrollment_id: UUID) -> bool: ...
    async def list_all(self) -> list[Enrollment]: ...
    async def list_by_student(self, student_id: UUID) -> list[Enrollment]: ...
    async def list_by_course(self, course_id: UUID) -> list[Enrollment]: ...
    async def count(self) -> int: ...
    async def page(
        self, *, offset: int, limit: int, **equals: object
    ) -> tuple[list[Enrollment], int]: ...
    async def recent(self, limit: int) -> list[Enrollment]: ...
    async def top_by_points(self, course_id: UUID, limit: int) -> list[Enrollment]: ...

    async def add_progress(
        self, enrollment_id: UUID, module_id: UUID, lesson_id: UUID
    ) -> Enrollment | None:
        """Add module and lesson to the completed sets in one record update.

        Add-if-absent: repeating the call leaves both sets unchanged.
        Returns the updated enrollment, or None when it does not exist.
        """
        ...

    async def add_points(
        self, enrollment_id: UUID, points: int
    ) -> Enrollment | None: ...
    async def complete(
        self, enrollment_id: UUID, grade: float
    ) -> Enrollment | None:
        """Set is_completed and grade once.  None if missing or already done."""
        ...


class InMemoryEnrollmentRepo(InMemoryRepo[Enrollment]):
    # No await between read and write below, so each update is atomic
    # with respect to other coroutines on the loop.

    async def get_for(self, student_id: UUID, course_id: UUID) -> Enrollment | None:
        for e in self._rows.values():
            if e.student_id == student_id and e.course_id == course_id:
                return e
        return None

    async def add(self, enrollment: Enrollment) -> None:
        if await self.get_for(enrollment.student_id, enrollment.course_id):
            raise DuplicateKeyError("student already enrolled in course")
        await super().add(enrollment)

    async def list_by_student(self, student_id: UUID) -> list[Enrollment]:
        return self._where(lambda e: e.student_id == student_id)

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        return self._where(lambda e: e.course_id == course_id)

    async def recent(self, limit: int) -> list[Enrollment]:
        return list(reversed(list(self._rows.values())))[:limit]

    async def top_by_points(self, course_id: UUID, limit: int) -> list[Enrollment]:
        rows = self._where(lambda e: e.course_id == course_id)
        return sorted(rows, key=lambda e: e.points, reverse=True)[:limit]

    async def add_progress(
        self, enrollment_id: UUID, module_id: UUID, lesson_id: UUID
    ) -> Enrollment | None:
        current = self._rows.get(enrollment_id)
        if current is None:
            return None
        updated = replace(
            current,
            completed_modules=current.completed_modules | {module_id},
            completed_lessons=current.completed_lessons | {lesson_id},
        )
        self._rows[enrollment_id] = updated
        return updated

    async def add_points(self, enrollment_id: UUID, points: int) -> Enrollment | None:
        current = self._rows.get(enrollment_id)
        if current is None:
            return None
        updated = replace(current, points=current.points + points)
        self._rows[enrollment_id] = updated
        return updated

    async def complete(
        self, enrollment_id: UUID, grade: float
    ) -> Enrollment | None:
        current = self._rows.get(enrollment_id)
        if current is None or current.is_completed:
            return None
        updated = replace(current, is_completed=True, grade=grade)
        self._rows[enrollment_id] = updated
        return updated
