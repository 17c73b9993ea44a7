"""Narrow capabilities passed between services.

Enrollments need course totals and titles, and need to request
notifications; courses and notifications must not import enrollments.
These protocols are the only coupling.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from lms.models.course import Lesson, Module


@dataclass(frozen=True, slots=True)
class CourseSummary:
    course_id: UUID
    title: str
    total_modules: int
    total_lessons: int


class CourseSummaryLookup(Protocol):
    async def summary(self, course_id: UUID) -> CourseSummary | None: ...

    async def locate_lesson(self, lesson_id: UUID) -> tuple[Lesson, Module] | None:
        """The lesson together with the module that owns it."""
        ...

    async def titles(
        self, module_id: UUID, lesson_id: UUID
    ) -> tuple[str | None, str | None]: ...


class Notifier(Protocol):
    async def notify_progress(
        self,
        user_id: str | UUID,
        message: str,
        settings: Mapping[str, bool] | None = None,
        *,
        title: str | None = None,
        fingerprint: str | None = None,
    ) -> None: ...

    async def notify_event(
        self,
        user_id: str | UUID,
        template_key: str,
        params: Mapping[str, object],
        *,
        fingerprint: str | None = None,
    ) -> None: ...


class EventPublisher(Protocol):
    async def publish(self, room: str, event: str, data: dict) -> int: ...
