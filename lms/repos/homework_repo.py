from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.homework import Homework, Submission
from lms.repos.base import DuplicateKeyError, InMemoryRepo


class HomeworkRepo(Protocol):
    async def get(self, homework_id: UUID) -> Homework | None: ...
    async def add(self, homework: Homework) -> None: ...
    async def save(self, homework: Homework) -> Homework: ...
    async def delete(self, homework_id: UUID) -> bool: ...
    async def list_all(self) -> list[Homework]: ...
    async def list_by_lessons(self, lesson_ids: list[UUID]) -> list[Homework]: ...
    async def list_active_with_deadline(self) -> list[Homework]: ...


class SubmissionRepo(Protocol):
    async def get(self, submission_id: UUID) -> Submission | None: ...
    async def get_for(
        self, homework_id: UUID, student_id: UUID
    ) -> Submission | None: ...
    async def add(self, submission: Submission) -> None: ...
    async def save(self, submission: Submission) -> Submission: ...
    async def list_by_homework(self, homework_id: UUID) -> list[Submission]: ...
    async def list_by_student(self, student_id: UUID) -> list[Submission]: ...
    async def list_by_homeworks(
        self, homework_ids: list[UUID], limit: int | None = None
    ) -> list[Submission]:
        """Submissions for any of the homeworks, newest first."""
        ...


class InMemoryHomeworkRepo(InMemoryRepo[Homework]):
    async def list_by_lessons(self, lesson_ids: list[UUID]) -> list[Homework]:
        wanted = set(lesson_ids)
        return self._where(lambda h: h.lesson_id in wanted)

    async def list_active_with_deadline(self) -> list[Homework]:
        return self._where(lambda h: h.is_active and h.deadline is not None)


class InMemorySubmissionRepo(InMemoryRepo[Submission]):
    async def get_for(self, homework_id: UUID, student_id: UUID) -> Submission | None:
        for s in self._rows.values():
            if s.homework_id == homework_id and s.student_id == student_id:
                return s
        return None

    async def add(self, submission: Submission) -> None:
        if await self.get_for(submission.homework_id, submission.student_id):
            raise DuplicateKeyError("submission already exists")
        await super().add(submission)

    async def list_by_homework(self, homework_id: UUID) -> list[Submission]:
        return self._where(lambda s: s.homework_id == homework_id)

    async def list_by_student(self, student_id: UUID) -> list[Submission]:
        return self._where(lambda s: s.student_id == student_id)

    async def list_by_homeworks(
        self, homework_ids: list[UUID], limit: int | None = None
    ) -> list[Submission]:
        wanted = set(homework_ids)
        rows = list(reversed(self._where(lambda s: s.homework_id in wanted)))
        return rows if limit is None else rows[:limit]
