from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.quiz import Quiz, QuizSubmission
from lms.repos.base import DuplicateKeyError, InMemoryRepo


class QuizRepo(Protocol):
    async def get(self, quiz_id: UUID) -> Quiz | None: ...
    async def add(self, quiz: Quiz) -> None: ...
    async def save(self, quiz: Quiz) -> Quiz: ...
    async def delete(self, quiz_id: UUID) -> bool: ...
    async def list_all(self) -> list[Quiz]: ...
    async def list_by_lesson(self, lesson_id: UUID) -> list[Quiz]: ...
    async def list_by_lessons(self, lesson_ids: list[UUID]) -> list[Quiz]: ...


class QuizSubmissionRepo(Protocol):
    async def add(self, submission: QuizSubmission) -> None: ...
    async def get_for(
        self, quiz_id: UUID, student_id: UUID
    ) -> QuizSubmission | None: ...
    async def list_by_student(self, student_id: UUID) -> list[QuizSubmission]: ...
    async def list_by_quiz(self, quiz_id: UUID) -> list[QuizSubmission]: ...


class InMemoryQuizRepo(InMemoryRepo[Quiz]):
    async def list_by_lesson(self, lesson_id: UUID) -> list[Quiz]:
        return self._where(lambda q: q.lesson_id == lesson_id)

    async def list_by_lessons(self, lesson_ids: list[UUID]) -> list[Quiz]:
        wanted = set(lesson_ids)
        return self._where(lambda q: q.lesson_id in wanted)


class InMemoryQuizSubmissionRepo(InMemoryRepo[QuizSubmission]):
    async def add(self, submission: QuizSubmission) -> None:
        if await self.get_for(submission.quiz_id, submission.student_id):
            raise DuplicateKeyError("quiz already submitted")
        await super().add(submission)

    async def get_for(self, quiz_id: UUID, student_id: UUID) -> QuizSubmission | None:
        for s in self._rows.values():
            if s.quiz_id == quiz_id and s.student_id == student_id:
                return s
        return None

    async def list_by_student(self, student_id: UUID) -> list[QuizSubmission]:
        return self._where(lambda s: s.student_id == student_id)

    async def list_by_quiz(self, quiz_id: UUID) -> list[QuizSubmission]:
        return self._where(lambda s: s.quiz_id == quiz_id)
