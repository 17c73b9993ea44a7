from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt

from lms.api.dependencies import (
    MANAGERS,
    STAFF,
    TEACHING,
    CurrentUser,
    ensure_self_or_staff,
    require_any_role,
)
from lms.models.enrollment import Enrollment
from lms.models.principal import Principal
from lms.wiring import enrollment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrollments", tags=["enrollments"])

Managers = Annotated[Principal, Depends(require_any_role(MANAGERS))]


class EnrollmentIn(BaseModel):
    student_id: str
    course_id: str
    deadline: datetime | None = None
    stream_id: str | None = None
    tariff_id: str | None = None
    skip_notifications: bool = False


class BatchEnrollmentIn(BaseModel):
    student_ids: list[str]
    course_ids: list[str]
    deadlines: list[datetime | None] | None = None


class ProgressIn(BaseModel):
    module_id: str
    lesson_id: str


class CompleteIn(BaseModel):
    grade: StrictInt | StrictFloat


class EnrollmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    course_id: UUID
    stream_id: UUID | None
    tariff_id: UUID | None
    completed_modules: list[UUID]
    completed_lessons: list[UUID]
    is_completed: bool
    grade: float | None
    deadline: datetime | None
    points: int
    enrolled_at: datetime | None


class CourseProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enrollment_id: UUID
    course_id: UUID
    course_title: str
    completed_modules: int
    total_modules: int
    completion_percentage: float
    completed_lessons: int
    total_lessons: int
    lesson_completion_percentage: float
    points: int
    is_completed: bool
    grade: float | None
    deadline: datetime | None


class DetailedProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: UUID
    progress: list[CourseProgressOut]


def enrollment_out(e: Enrollment) -> EnrollmentOut:
    return EnrollmentOut.model_validate(e)


async def _owned(enrollment_id: str, principal: Principal) -> Enrollment:
    enrollment = await enrollment_service.get(enrollment_id)
    ensure_self_or_staff(principal, str(enrollment.student_id))
    return enrollment


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    payload: EnrollmentIn, principal: Managers
) -> EnrollmentOut:
    enrollment = await enrollment_service.create_enrollment(
        payload.student_id,
        payload.course_id,
        deadline=payload.deadline,
        stream_id=payload.stream_id,
        tariff_id=payload.tariff_id,
        skip_notifications=payload.skip_notifications,
    )
    logger.info("Enrollment %s created by user=%s", enrollment.id, principal.user_id)
    return enrollment_out(enrollment)


@router.post(
    "/batch",
    response_model=list[EnrollmentOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_batch(
    payload: BatchEnrollmentIn, _principal: Managers
) -> list[EnrollmentOut]:
    created = await enrollment_service.create_batch_enrollments(
        payload.student_ids, payload.course_ids, payload.deadlines
    )
    return [enrollment_out(e) for e in created]


@router.get("/export/csv")
async def export_csv(_principal: Managers) -> Response:
    body = await enrollment_service.export_csv()
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="enrollments.csv"'},
    )


@router.get("/student/{student_id}", response_model=list[EnrollmentOut])
async def list_by_student(
    student_id: str, principal: CurrentUser
) -> list[EnrollmentOut]:
    ensure_self_or_staff(principal, student_id)
    enrollments = await enrollment_service.list_by_student(student_id)
    return [enrollment_out(e) for e in enrollments]


@router.get("/course/{course_id}", response_model=list[EnrollmentOut])
async def list_by_course(
    course_id: str,
    _principal: Annotated[Principal, Depends(require_any_role(STAFF))],
) -> list[EnrollmentOut]:
    enrollments = await enrollment_service.list_by_course(course_id)
    return [enrollment_out(e) for e in enrollments]


@router.get("/progress/{student_id}", response_model=DetailedProgressOut)
async def detailed_progress(
    student_id: str, principal: CurrentUser
) -> DetailedProgressOut:
    ensure_self_or_staff(principal, student_id)
    progress = await enrollment_service.get_detailed_student_progress(student_id)
    return DetailedProgressOut.model_validate(progress)


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
async def get_enrollment(enrollment_id: str, principal: CurrentUser) -> EnrollmentOut:
    return enrollment_out(await _owned(enrollment_id, principal))


@router.put("/{enrollment_id}/progress", response_model=EnrollmentOut)
async def update_progress(
    enrollment_id: str, payload: ProgressIn, principal: CurrentUser
) -> EnrollmentOut:
    await _owned(enrollment_id, principal)
    enrollment = await enrollment_service.update_progress(
        enrollment_id, payload.module_id, payload.lesson_id
    )
    return enrollment_out(enrollment)


@router.post(
    "/{enrollment_id}/lessons/{lesson_id}/complete", response_model=EnrollmentOut
)
async def complete_lesson(
    enrollment_id: str, lesson_id: str, principal: CurrentUser
) -> EnrollmentOut:
    owned = await _owned(enrollment_id, principal)
    enrollment = await enrollment_service.complete_lesson(
        owned.student_id, owned.course_id, lesson_id
    )
    return enrollment_out(enrollment)


@router.put("/{enrollment_id}/complete", response_model=EnrollmentOut)
async def complete_course(
    enrollment_id: str,
    payload: CompleteIn,
    principal: Annotated[Principal, Depends(require_any_role(TEACHING))],
) -> EnrollmentOut:
    enrollment = await enrollment_service.complete_course(enrollment_id, payload.grade)
    logger.info(
        "Enrollment %s completed by user=%s grade=%s",
        enrollment.id,
        principal.user_id,
        payload.grade,
    )
    return enrollment_out(enrollment)


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enrollment(enrollment_id: str, _principal: Managers) -> None:
    await enrollment_service.delete(enrollment_id)
