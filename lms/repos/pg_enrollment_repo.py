"""PostgreSQL implementation of EnrollmentRepo.

Set additions run as a single UPDATE: each array column gets
`array_append(col, :id)` unless `:id = ANY(col)` already holds, so two
concurrent completions of different lessons never overwrite each other.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import case, func, select, update

from lms.db.tables import EnrollmentRow
from lms.models.enrollment import Enrollment
from lms.repos.pg_base import PgRepo


def _add_if_absent(column: Any, value: UUID) -> Any:
    return case(
        (column.any(value), column),
        else_=func.array_append(column, value),
    )


class PgEnrollmentRepo(PgRepo[Enrollment]):
    row_cls = EnrollmentRow
    order_by = EnrollmentRow.enrolled_at

    def _to_model(self, row: EnrollmentRow) -> Enrollment:
        return _row_to_enrollment(row)

    def _to_row(self, e: Enrollment) -> EnrollmentRow:
        return EnrollmentRow(
            id=e.id,
            student_id=e.student_id,
            course_id=e.course_id,
            stream_id=e.stream_id,
            tariff_id=e.tariff_id,
            completed_modules=list(e.completed_modules),
            completed_lessons=list(e.completed_lessons),
            is_completed=e.is_completed,
            grade=e.grade,
            deadline=e.deadline,
            points=e.points,
            enrolled_at=e.enrolled_at,
        )

    async def get_for(self, student_id: UUID, course_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.student_id == student_id,
            EnrollmentRow.course_id == course_id,
        )
        return await self._select_one(stmt)

    async def list_by_student(self, student_id: UUID) -> list[Enrollment]:
        stmt = select(EnrollmentRow).where(EnrollmentRow.student_id == student_id)
        return await self._select(self._ordered(stmt))

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        stmt = select(EnrollmentRow).where(EnrollmentRow.course_id == course_id)
        return await self._select(self._ordered(stmt))

    async def recent(self, limit: int) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .order_by(EnrollmentRow.enrolled_at.desc())
            .limit(limit)
        )
        return await self._select(stmt)

    async def top_by_points(self, course_id: UUID, limit: int) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.course_id == course_id)
            .order_by(EnrollmentRow.points.desc())
            .limit(limit)
        )
        return await self._select(stmt)

    async def add_progress(
        self, enrollment_id: UUID, module_id: UUID, lesson_id: UUID
    ) -> Enrollment | None:
        stmt = (
            update(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .values(
                completed_modules=_add_if_absent(
                    EnrollmentRow.completed_modules, module_id
                ),
                completed_lessons=_add_if_absent(
                    EnrollmentRow.completed_lessons, lesson_id
                ),
            )
            .returning(EnrollmentRow)
        )
        return await self._update_returning(stmt)

    async def add_points(self, enrollment_id: UUID, points: int) -> Enrollment | None:
        stmt = (
            update(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .values(points=EnrollmentRow.points + points)
            .returning(EnrollmentRow)
        )
        return await self._update_returning(stmt)

    async def complete(
        self, enrollment_id: UUID, grade: float
    ) -> Enrollment | None:
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.id == enrollment_id,
                EnrollmentRow.is_completed.is_(False),
            )
            .values(is_completed=True, grade=grade)
            .returning(EnrollmentRow)
        )
        return await self._update_returning(stmt)


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        student_id=row.student_id,
        course_id=row.course_id,
        stream_id=row.stream_id,
        tariff_id=row.tariff_id,
        completed_modules=frozenset(row.completed_modules or ()),
        completed_lessons=frozenset(row.completed_lessons or ()),
        is_completed=row.is_completed,
        grade=row.grade,
        deadline=row.deadline,
        points=row.points,
        enrolled_at=row.enrolled_at,
    )
