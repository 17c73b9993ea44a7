from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from lms.api.dependencies import (
    MANAGERS,
    STAFF,
    CurrentUser,
    ensure_self_or_staff,
    require_any_role,
)
from lms.api.homeworks import SubmissionOut
from lms.models.principal import Principal
from lms.wiring import analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])

Staff = Annotated[Principal, Depends(require_any_role(STAFF))]


class StudentProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: UUID
    course_id: UUID
    course_title: str
    completed_modules: int
    total_modules: int
    completion_percentage: float
    completed_lessons: int
    total_lessons: int
    lesson_completion_percentage: float
    points: int
    avg_homework_grade: float
    avg_quiz_score: float
    is_completed: bool
    grade: float | None


class CourseActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    course_title: str
    total_enrollments: int
    completed_enrollments: int
    active_homeworks: int
    total_submissions: int
    recent_submissions: list[SubmissionOut]


class CourseAnalyticsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: str
    course_title: str
    total_students: int
    completed_students: int
    completion_rate: float
    average_grade: float


class OverallAnalyticsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_students: int
    completed_students: int
    completion_rate: float
    average_grade: float
    total_courses: int


@router.get(
    "/students/{student_id}/progress", response_model=list[StudentProgressOut]
)
async def student_progress(
    student_id: str, principal: CurrentUser
) -> list[StudentProgressOut]:
    ensure_self_or_staff(principal, student_id)
    rows = await analytics_service.student_snapshot(student_id)
    return [StudentProgressOut.model_validate(r) for r in rows]


@router.get(
    "/students/{student_id}/courses/{course_id}", response_model=StudentProgressOut
)
async def student_course_progress(
    student_id: str, course_id: str, principal: CurrentUser
) -> StudentProgressOut:
    ensure_self_or_staff(principal, student_id)
    row = await analytics_service.get_student_progress(student_id, course_id)
    return StudentProgressOut.model_validate(row)


@router.get("/courses/{course_id}/activity", response_model=CourseActivityOut)
async def course_activity(course_id: str, _principal: Staff) -> CourseActivityOut:
    return CourseActivityOut.model_validate(
        await analytics_service.course_activity(course_id)
    )


@router.get("/courses/{course_id}", response_model=CourseAnalyticsOut)
async def course_analytics(course_id: str, _principal: Staff) -> CourseAnalyticsOut:
    return CourseAnalyticsOut.model_validate(
        await analytics_service.course_analytics(course_id)
    )


@router.get("/overall", response_model=OverallAnalyticsOut)
async def overall_analytics(
    _principal: Annotated[Principal, Depends(require_any_role(MANAGERS))],
) -> OverallAnalyticsOut:
    return OverallAnalyticsOut.model_validate(
        await analytics_service.overall_analytics()
    )
