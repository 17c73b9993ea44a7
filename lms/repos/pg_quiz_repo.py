"""PostgreSQL implementations of QuizRepo and QuizSubmissionRepo.

Questions and answers are stored as JSONB; choice answers round-trip
as JSON arrays and come back as tuples of option indices.
"""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from sqlalchemy import select

from lms.db.tables import QuizRow, QuizSubmissionRow
from lms.models.quiz import Answer, Question, Quiz, QuizSubmission
from lms.repos.pg_base import PgRepo


def _question_from_json(data: dict) -> Question:
    return Question(
        question=data["question"],
        options=tuple(data.get("options") or ()),
        correct_answers=tuple(data.get("correct_answers") or ()),
        correct_text_answer=data.get("correct_text_answer"),
        weight=data.get("weight", 1),
        hint=data.get("hint"),
    )


def _answer_from_json(value: object) -> Answer | None:
    if value is None or isinstance(value, str):
        return value
    return tuple(int(v) for v in value)  # type: ignore[union-attr]


class PgQuizRepo(PgRepo[Quiz]):
    row_cls = QuizRow

    def _to_model(self, row: QuizRow) -> Quiz:
        return Quiz(
            id=row.id,
            lesson_id=row.lesson_id,
            title=row.title,
            questions=tuple(_question_from_json(q) for q in row.questions or ()),
            time_limit=row.time_limit,
        )

    def _to_row(self, quiz: Quiz) -> QuizRow:
        return QuizRow(
            id=quiz.id,
            lesson_id=quiz.lesson_id,
            title=quiz.title,
            questions=[asdict(q) for q in quiz.questions],
            time_limit=quiz.time_limit,
        )

    async def list_by_lesson(self, lesson_id: UUID) -> list[Quiz]:
        stmt = select(QuizRow).where(QuizRow.lesson_id == lesson_id)
        return await self._select(stmt)

    async def list_by_lessons(self, lesson_ids: list[UUID]) -> list[Quiz]:
        if not lesson_ids:
            return []
        stmt = select(QuizRow).where(QuizRow.lesson_id.in_(lesson_ids))
        return await self._select(stmt)


class PgQuizSubmissionRepo(PgRepo[QuizSubmission]):
    row_cls = QuizSubmissionRow
    order_by = QuizSubmissionRow.submitted_at

    def _to_model(self, row: QuizSubmissionRow) -> QuizSubmission:
        return QuizSubmission(
            id=row.id,
            quiz_id=row.quiz_id,
            student_id=row.student_id,
            answers=tuple(_answer_from_json(a) for a in row.answers or ()),
            score=row.score,
            submitted_at=row.submitted_at,
        )

    def _to_row(self, s: QuizSubmission) -> QuizSubmissionRow:
        return QuizSubmissionRow(
            id=s.id,
            quiz_id=s.quiz_id,
            student_id=s.student_id,
            answers=[
                a if a is None or isinstance(a, str) else list(a) for a in s.answers
            ],
            score=s.score,
            submitted_at=s.submitted_at,
        )

    async def get_for(self, quiz_id: UUID, student_id: UUID) -> QuizSubmission | None:
        stmt = select(QuizSubmissionRow).where(
            QuizSubmissionRow.quiz_id == quiz_id,
            QuizSubmissionRow.student_id == student_id,
        )
        return await self._select_one(stmt)

    async def list_by_student(self, student_id: UUID) -> list[QuizSubmission]:
        stmt = select(QuizSubmissionRow).where(
            QuizSubmissionRow.student_id == student_id
        )
        return await self._select(self._ordered(stmt))

    async def list_by_quiz(self, quiz_id: UUID) -> list[QuizSubmission]:
        stmt = select(QuizSubmissionRow).where(QuizSubmissionRow.quiz_id == quiz_id)
        return await self._select(self._ordered(stmt))
