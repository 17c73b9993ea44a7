"""Course catalogue: courses, modules, lessons.

Also serves as the CourseSummaryLookup for the enrollment service
(totals and titles), which keeps enrollments from importing this module.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from lms.models.course import Course, Lesson, Module
from lms.repos.course_repo import CourseRepo, LessonRepo, ModuleRepo
from lms.services.errors import (
    CourseNotFound,
    LessonNotFound,
    ModuleNotFound,
    ValidationFailed,
)
from lms.services.ids import parse_id, parse_optional_id
from lms.services.interfaces import CourseSummary

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(
        self, *, courses: CourseRepo, modules: ModuleRepo, lessons: LessonRepo
    ) -> None:
        self._courses = courses
        self._modules = modules
        self._lessons = lessons

    # --- courses ---

    async def create_course(
        self, *, title: str, description: str = "", teacher_id: str | None = None
    ) -> Course:
        if not title.strip():
            raise ValidationFailed("title must not be empty")
        course = Course.new(
            title=title.strip(),
            description=description,
            teacher_id=parse_optional_id(teacher_id, "teacher_id"),
        )
        await self._courses.add(course)
        logger.info("Created course id=%s title=%r", course.id, course.title)
        return course

    async def get_course(self, course_id: str | UUID) -> Course:
        cid = parse_id(course_id, "course_id")
        course = await self._courses.get(cid)
        if course is None:
            raise CourseNotFound(cid)
        return course

    async def list_courses(self) -> list[Course]:
        return await self._courses.list_all()

    async def count_courses(self) -> int:
        return await self._courses.count()

    async def update_course(
        self,
        course_id: str | UUID,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> Course:
        course = await self.get_course(course_id)
        if title is not None and not title.strip():
            raise ValidationFailed("title must not be empty")
        updated = replace(
            course,
            title=title.strip() if title is not None else course.title,
            description=description if description is not None else course.description,
        )
        return await self._courses.save(updated)

    async def delete_course(self, course_id: str | UUID) -> None:
        course = await self.get_course(course_id)
        for module in await self._modules.list_by_course(course.id):
            for lesson in await self._lessons.list_by_module(module.id):
                await self._lessons.delete(lesson.id)
            await self._modules.delete(module.id)
        await self._courses.delete(course.id)
        logger.info("Deleted course id=%s", course.id)

    # --- modules and lessons ---

    async def add_module(
        self, course_id: str | UUID, *, title: str, position: int | None = None
    ) -> Module:
        course = await self.get_course(course_id)
        if position is None:
            position = len(await self._modules.list_by_course(course.id))
        module = Module.new(course_id=course.id, title=title, position=position)
        await self._modules.add(module)
        return module

    async def get_module(self, module_id: str | UUID) -> Module:
        mid = parse_id(module_id, "module_id")
        module = await self._modules.get(mid)
        if module is None:
            raise ModuleNotFound(mid)
        return module

    async def list_modules(self, course_id: str | UUID) -> list[Module]:
        course = await self.get_course(course_id)
        return await self._modules.list_by_course(course.id)

    async def add_lesson(
        self,
        module_id: str | UUID,
        *,
        title: str,
        content: str = "",
        points: int = 1,
        position: int | None = None,
    ) -> Lesson:
        module = await self.get_module(module_id)
        if points < 0:
            raise ValidationFailed("points must be >= 0")
        if position is None:
            position = len(await self._lessons.list_by_module(module.id))
        lesson = Lesson.new(
            module_id=module.id,
            title=title,
            content=content,
            points=points,
            position=position,
        )
        await self._lessons.add(lesson)
        return lesson

    async def get_lesson(self, lesson_id: str | UUID) -> Lesson:
        lid = parse_id(lesson_id, "lesson_id")
        lesson = await self._lessons.get(lid)
        if lesson is None:
            raise LessonNotFound(lid)
        return lesson

    async def list_lessons(self, module_id: str | UUID) -> list[Lesson]:
        module = await self.get_module(module_id)
        return await self._lessons.list_by_module(module.id)

    async def lessons_for_course(self, course_id: UUID) -> list[Lesson]:
        modules = await self._modules.list_by_course(course_id)
        return await self._lessons.list_by_modules([m.id for m in modules])

    async def get_structure(self, course_id: str | UUID) -> dict:
        course = await self.get_course(course_id)
        modules = await self._modules.list_by_course(course.id)
        return {
            "id": str(course.id),
            "title": course.title,
            "description": course.description,
            "modules": [
                {
                    "id": str(m.id),
                    "title": m.title,
                    "position": m.position,
                    "lessons": [
                        {
                            "id": str(lsn.id),
                            "title": lsn.title,
                            "points": lsn.points,
                            "position": lsn.position,
                        }
                        for lsn in await self._lessons.list_by_module(m.id)
                    ],
                }
                for m in modules
            ],
        }

    # --- CourseSummaryLookup ---

    async def summary(self, course_id: UUID) -> CourseSummary | None:
        course = await self._courses.get(course_id)
        if course is None:
            return None
        modules = await self._modules.list_by_course(course_id)
        lessons = await self._lessons.list_by_modules([m.id for m in modules])
        return CourseSummary(
            course_id=course.id,
            title=course.title,
            total_modules=len(modules),
            total_lessons=len(lessons),
        )

    async def locate_lesson(self, lesson_id: UUID) -> tuple[Lesson, Module] | None:
        lesson = await self._lessons.get(lesson_id)
        if lesson is None:
            return None
        module = await self._modules.get(lesson.module_id)
        if module is None:
            return None
        return lesson, module

    async def titles(
        self, module_id: UUID, lesson_id: UUID
    ) -> tuple[str | None, str | None]:
        module = await self._modules.get(module_id)
        lesson = await self._lessons.get(lesson_id)
        return (
            module.title if module else None,
            lesson.title if lesson else None,
        )
