"""PostgreSQL implementations of HomeworkRepo and SubmissionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from lms.db.tables import HomeworkRow, SubmissionRow
from lms.models.homework import Homework, Submission
from lms.repos.pg_base import PgRepo


class PgHomeworkRepo(PgRepo[Homework]):
    row_cls = HomeworkRow
    order_by = HomeworkRow.created_at

    def _to_model(self, row: HomeworkRow) -> Homework:
        return Homework(
            id=row.id,
            lesson_id=row.lesson_id,
            description=row.description,
            category=row.category,
            deadline=row.deadline,
            is_active=row.is_active,
            points=row.points,
            created_at=row.created_at,
        )

    def _to_row(self, hw: Homework) -> HomeworkRow:
        return HomeworkRow(
            id=hw.id,
            lesson_id=hw.lesson_id,
            description=hw.description,
            category=hw.category,
            deadline=hw.deadline,
            is_active=hw.is_active,
            points=hw.points,
            created_at=hw.created_at,
        )

    async def list_by_lessons(self, lesson_ids: list[UUID]) -> list[Homework]:
        if not lesson_ids:
            return []
        stmt = select(HomeworkRow).where(HomeworkRow.lesson_id.in_(lesson_ids))
        return await self._select(self._ordered(stmt))

    async def list_active_with_deadline(self) -> list[Homework]:
        stmt = select(HomeworkRow).where(
            HomeworkRow.is_active.is_(True), HomeworkRow.deadline.is_not(None)
        )
        return await self._select(stmt)


class PgSubmissionRepo(PgRepo[Submission]):
    row_cls = SubmissionRow
    order_by = SubmissionRow.created_at

    def _to_model(self, row: SubmissionRow) -> Submission:
        return Submission(
            id=row.id,
            homework_id=row.homework_id,
            student_id=row.student_id,
            content=row.content,
            grade=row.grade,
            teacher_comment=row.teacher_comment,
            is_reviewed=row.is_reviewed,
            created_at=row.created_at,
        )

    def _to_row(self, s: Submission) -> SubmissionRow:
        return SubmissionRow(
            id=s.id,
            homework_id=s.homework_id,
            student_id=s.student_id,
            content=s.content,
            grade=s.grade,
            teacher_comment=s.teacher_comment,
            is_reviewed=s.is_reviewed,
            created_at=s.created_at,
        )

    async def get_for(self, homework_id: UUID, student_id: UUID) -> Submission | None:
        stmt = select(SubmissionRow).where(
            SubmissionRow.homework_id == homework_id,
            SubmissionRow.student_id == student_id,
        )
        return await self._select_one(stmt)

    async def list_by_homework(self, homework_id: UUID) -> list[Submission]:
        stmt = select(SubmissionRow).where(SubmissionRow.homework_id == homework_id)
        return await self._select(self._ordered(stmt))

    async def list_by_student(self, student_id: UUID) -> list[Submission]:
        stmt = select(SubmissionRow).where(SubmissionRow.student_id == student_id)
        return await self._select(self._ordered(stmt))

    async def list_by_homeworks(
        self, homework_ids: list[UUID], limit: int | None = None
    ) -> list[Submission]:
        if not homework_ids:
            return []
        stmt = (
            select(SubmissionRow)
            .where(SubmissionRow.homework_id.in_(homework_ids))
            .order_by(SubmissionRow.created_at.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._select(stmt)
