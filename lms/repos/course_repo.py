from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.course import Course, Lesson, Module
from lms.repos.base import InMemoryRepo


class CourseRepo(Protocol):
    async def get(self, course_id: UUID) -> Course | None: ...
    async def add(self, course: Course) -> None: ...
    async def save(self, course: Course) -> Course: ...
    async def delete(self, course_id: UUID) -> bool: ...
    async def list_all(self) -> list[Course]: ...
    async def count(self) -> int: ...
    async def search(
        self, *, title: str | None, offset: int, limit: int
    ) -> tuple[list[Course], int]: ...


class ModuleRepo(Protocol):
    async def get(self, module_id: UUID) -> Module | None: ...
    async def add(self, module: Module) -> None: ...
    async def save(self, module: Module) -> Module: ...
    async def delete(self, module_id: UUID) -> bool: ...
    async def list_by_course(self, course_id: UUID) -> list[Module]: ...


class LessonRepo(Protocol):
    async def get(self, lesson_id: UUID) -> Lesson | None: ...
    async def add(self, lesson: Lesson) -> None: ...
    async def save(self, lesson: Lesson) -> Lesson: ...
    async def delete(self, lesson_id: UUID) -> bool: ...
    async def list_by_module(self, module_id: UUID) -> list[Lesson]: ...
    async def list_by_modules(self, module_ids: list[UUID]) -> list[Lesson]: ...


class InMemoryCourseRepo(InMemoryRepo[Course]):
    async def search(
        self, *, title: str | None, offset: int, limit: int
    ) -> tuple[list[Course], int]:
        needle = title.lower() if title else None
        rows = self._where(lambda c: needle is None or needle in c.title.lower())
        return rows[offset : offset + limit], len(rows)


class InMemoryModuleRepo(InMemoryRepo[Module]):
    async def list_by_course(self, course_id: UUID) -> list[Module]:
        rows = self._where(lambda m: m.course_id == course_id)
        return sorted(rows, key=lambda m: m.position)


class InMemoryLessonRepo(InMemoryRepo[Lesson]):
    async def list_by_module(self, module_id: UUID) -> list[Lesson]:
        rows = self._where(lambda lsn: lsn.module_id == module_id)
        return sorted(rows, key=lambda lsn: lsn.position)

    async def list_by_modules(self, module_ids: list[UUID]) -> list[Lesson]:
        wanted = set(module_ids)
        return self._where(lambda lsn: lsn.module_id in wanted)
