"""Admin listings with pagination, and the activity summary."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Generic, TypeVar
from uuid import UUID

from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.notification import Notification
from lms.models.user import ROLES, User
from lms.repos.course_repo import CourseRepo
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.notification_repo import NotificationRepo
from lms.repos.user_repo import UserRepo
from lms.services.errors import ValidationFailed
from lms.services.ids import parse_optional_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
RECENT_ITEMS = 5


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    data: list[T]
    total: int
    page: int
    limit: int
    total_pages: int


@dataclass(frozen=True, slots=True)
class ActivitySummary:
    total_users: int
    total_courses: int
    total_enrollments: int
    total_notifications: int
    recent_enrollments: list[Enrollment]
    recent_notifications: list[Notification]


def page_window(page: int, limit: int) -> tuple[int, int]:
    """Validate page/limit and return (offset, limit)."""
    if page < 1:
        raise ValidationFailed("page must be >= 1")
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationFailed(f"limit must be between 1 and {MAX_LIMIT}")
    return (page - 1) * limit, limit


def _page(data: list[T], total: int, page: int, limit: int) -> Page[T]:
    return Page(
        data=data,
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


class AdminService:
    def __init__(
        self,
        *,
        users: UserRepo,
        courses: CourseRepo,
        enrollments: EnrollmentRepo,
        notifications: NotificationRepo,
    ) -> None:
        self._users = users
        self._courses = courses
        self._enrollments = enrollments
        self._notifications = notifications

    async def list_users(
        self,
        *,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
        role: str | None = None,
        email: str | None = None,
    ) -> Page[User]:
        offset, limit = page_window(page, limit)
        if role is not None and role not in ROLES:
            raise ValidationFailed(f"unknown role: {role}")
        users, total = await self._users.search(
            role=role, email=email or None, offset=offset, limit=limit
        )
        return _page(users, total, page, limit)

    async def list_courses(
        self, *, page: int = 1, limit: int = DEFAULT_LIMIT, title: str | None = None
    ) -> Page[Course]:
        offset, limit = page_window(page, limit)
        courses, total = await self._courses.search(
            title=title or None, offset=offset, limit=limit
        )
        return _page(courses, total, page, limit)

    async def list_enrollments(
        self,
        *,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
        course_id: str | UUID | None = None,
        student_id: str | UUID | None = None,
        is_completed: bool | None = None,
    ) -> Page[Enrollment]:
        offset, limit = page_window(page, limit)
        rows, total = await self._enrollments.page(
            offset=offset,
            limit=limit,
            course_id=parse_optional_id(course_id, "course_id"),
            student_id=parse_optional_id(student_id, "student_id"),
            is_completed=is_completed,
        )
        return _page(rows, total, page, limit)

    async def list_notifications(
        self,
        *,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
        user_id: str | UUID | None = None,
        is_read: bool | None = None,
    ) -> Page[Notification]:
        offset, limit = page_window(page, limit)
        rows, total = await self._notifications.page(
            offset=offset,
            limit=limit,
            user_id=parse_optional_id(user_id, "user_id"),
            is_read=is_read,
        )
        return _page(rows, total, page, limit)

    async def activity(self) -> ActivitySummary:
        summary = ActivitySummary(
            total_users=await self._users.count(),
            total_courses=await self._courses.count(),
            total_enrollments=await self._enrollments.count(),
            total_notifications=await self._notifications.count(),
            recent_enrollments=await self._enrollments.recent(RECENT_ITEMS),
            recent_notifications=await self._notifications.recent(RECENT_ITEMS),
        )
        logger.debug(
            "Activity summary users=%d courses=%d enrollments=%d",
            summary.total_users,
            summary.total_courses,
            summary.total_enrollments,
        )
        return summary
