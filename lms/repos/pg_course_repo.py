"""PostgreSQL implementations of CourseRepo, ModuleRepo and LessonRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from lms.db.tables import CourseRow, LessonRow, ModuleRow
from lms.models.course import Course, Lesson, Module
from lms.repos.pg_base import PgRepo


class PgCourseRepo(PgRepo[Course]):
    row_cls = CourseRow
    order_by = CourseRow.created_at

    def _to_model(self, row: CourseRow) -> Course:
        return Course(
            id=row.id,
            title=row.title,
            description=row.description or "",
            teacher_id=row.teacher_id,
            created_at=row.created_at,
        )

    def _to_row(self, course: Course) -> CourseRow:
        return CourseRow(
            id=course.id,
            title=course.title,
            description=course.description,
            teacher_id=course.teacher_id,
            created_at=course.created_at,
        )

    async def search(
        self, *, title: str | None, offset: int, limit: int
    ) -> tuple[list[Course], int]:
        conditions = [CourseRow.title.ilike(f"%{title}%")] if title else []
        return await self._page(conditions, offset=offset, limit=limit)


class PgModuleRepo(PgRepo[Module]):
    row_cls = ModuleRow
    order_by = ModuleRow.position

    def _to_model(self, row: ModuleRow) -> Module:
        return Module(
            id=row.id, course_id=row.course_id, title=row.title, position=row.position
        )

    def _to_row(self, module: Module) -> ModuleRow:
        return ModuleRow(
            id=module.id,
            course_id=module.course_id,
            title=module.title,
            position=module.position,
        )

    async def list_by_course(self, course_id: UUID) -> list[Module]:
        stmt = select(ModuleRow).where(ModuleRow.course_id == course_id)
        return await self._select(self._ordered(stmt))


class PgLessonRepo(PgRepo[Lesson]):
    row_cls = LessonRow
    order_by = LessonRow.position

    def _to_model(self, row: LessonRow) -> Lesson:
        return Lesson(
            id=row.id,
            module_id=row.module_id,
            title=row.title,
            content=row.content or "",
            points=row.points,
            position=row.position,
        )

    def _to_row(self, lesson: Lesson) -> LessonRow:
        return LessonRow(
            id=lesson.id,
            module_id=lesson.module_id,
            title=lesson.title,
            content=lesson.content,
            points=lesson.points,
            position=lesson.position,
        )

    async def list_by_module(self, module_id: UUID) -> list[Lesson]:
        stmt = select(LessonRow).where(LessonRow.module_id == module_id)
        return await self._select(self._ordered(stmt))

    async def list_by_modules(self, module_ids: list[UUID]) -> list[Lesson]:
        if not module_ids:
            return []
        stmt = select(LessonRow).where(LessonRow.module_id.in_(module_ids))
        return await self._select(stmt)
