"""Admin console: paginated listings and an activity summary."""

from __future__ import annotations

import logging
from typing import Annotated, Generic, TypeVar

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from lms.api.courses import CourseOut
from lms.api.dependencies import MANAGERS, require_any_role
from lms.api.enrollments import EnrollmentOut
from lms.api.notifications import NotificationOut
from lms.api.users import UserOut
from lms.models.principal import Principal
from lms.services.admin_service import DEFAULT_LIMIT
from lms.wiring import admin_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

Managers = Annotated[Principal, Depends(require_any_role(MANAGERS))]

ItemT = TypeVar("ItemT")


class PageOut(BaseModel, Generic[ItemT]):
    model_config = ConfigDict(from_attributes=True)

    data: list[ItemT]
    total: int
    page: int
    limit: int
    total_pages: int


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    total_courses: int
    total_enrollments: int
    total_notifications: int
    recent_enrollments: list[EnrollmentOut]
    recent_notifications: list[NotificationOut]


@router.get("/users", response_model=PageOut[UserOut])
async def admin_users(
    principal: Managers,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    role: str | None = None,
    email: str | None = None,
) -> PageOut[UserOut]:
    result = await admin_service.list_users(
        page=page, limit=limit, role=role, email=email
    )
    logger.debug("Admin user listing by user=%s page=%d", principal.user_id, page)
    return PageOut[UserOut].model_validate(result)


@router.get("/courses", response_model=PageOut[CourseOut])
async def admin_courses(
    _principal: Managers,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    title: str | None = None,
) -> PageOut[CourseOut]:
    result = await admin_service.list_courses(page=page, limit=limit, title=title)
    return PageOut[CourseOut].model_validate(result)


@router.get("/enrollments", response_model=PageOut[EnrollmentOut])
async def admin_enrollments(
    _principal: Managers,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    course_id: str | None = None,
    student_id: str | None = None,
    is_completed: bool | None = None,
) -> PageOut[EnrollmentOut]:
    result = await admin_service.list_enrollments(
        page=page,
        limit=limit,
        course_id=course_id,
        student_id=student_id,
        is_completed=is_completed,
    )
    return PageOut[EnrollmentOut].model_validate(result)


@router.get("/notifications", response_model=PageOut[NotificationOut])
async def admin_notifications(
    _principal: Managers,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    user_id: str | None = None,
    is_read: bool | None = None,
) -> PageOut[NotificationOut]:
    result = await admin_service.list_notifications(
        page=page, limit=limit, user_id=user_id, is_read=is_read
    )
    return PageOut[NotificationOut].model_validate(result)


@router.get("/activity", response_model=ActivityOut)
async def admin_activity(_principal: Managers) -> ActivityOut:
    return ActivityOut.model_validate(await admin_service.activity())
