from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict

from lms.api.dependencies import (
    STAFF,
    TEACHING,
    CurrentUser,
    ensure_self_or_staff,
    require_any_role,
)
from lms.models.principal import Principal
from lms.wiring import homework_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/homeworks", tags=["homeworks"])

Teaching = Annotated[Principal, Depends(require_any_role(TEACHING))]
Staff = Annotated[Principal, Depends(require_any_role(STAFF))]


class HomeworkIn(BaseModel):
    lesson_id: str
    description: str
    category: str = "theory"
    deadline: datetime | None = None
    points: int = 10


class HomeworkUpdateIn(BaseModel):
    description: str | None = None
    category: str | None = None
    deadline: datetime | None = None
    is_active: bool | None = None
    points: int | None = None


class HomeworkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lesson_id: UUID
    description: str
    category: str
    deadline: datetime | None
    is_active: bool
    points: int
    created_at: datetime | None


class SubmissionIn(BaseModel):
    content: str


class GradeIn(BaseModel):
    grade: int
    comment: str | None = None


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    homework_id: UUID
    student_id: UUID
    content: str
    grade: int | None
    teacher_comment: str | None
    is_reviewed: bool
    created_at: datetime | None


@router.get("", response_model=list[HomeworkOut])
async def list_homeworks(
    _principal: CurrentUser, lesson_id: str | None = None
) -> list[HomeworkOut]:
    found = await homework_service.list_homeworks(lesson_id)
    return [HomeworkOut.model_validate(h) for h in found]


@router.post("", response_model=HomeworkOut, status_code=status.HTTP_201_CREATED)
async def create_homework(payload: HomeworkIn, _principal: Teaching) -> HomeworkOut:
    homework = await homework_service.create_homework(**payload.model_dump())
    return HomeworkOut.model_validate(homework)


@router.get("/submissions/student/{student_id}", response_model=list[SubmissionOut])
async def student_submissions(
    student_id: str, principal: CurrentUser
) -> list[SubmissionOut]:
    ensure_self_or_staff(principal, student_id)
    found = await homework_service.list_submissions_by_student(student_id)
    return [SubmissionOut.model_validate(s) for s in found]


@router.get("/submissions/{submission_id}", response_model=SubmissionOut)
async def get_submission(submission_id: str, principal: CurrentUser) -> SubmissionOut:
    submission = await homework_service.get_submission(submission_id)
    ensure_self_or_staff(principal, str(submission.student_id))
    return SubmissionOut.model_validate(submission)


@router.put("/submissions/{submission_id}/grade", response_model=SubmissionOut)
async def grade_submission(
    submission_id: str, payload: GradeIn, principal: Staff
) -> SubmissionOut:
    submission = await homework_service.grade_submission(
        submission_id, payload.grade, payload.comment
    )
    logger.info(
        "Submission %s graded by user=%s", submission.id, principal.user_id
    )
    return SubmissionOut.model_validate(submission)


@router.get("/{homework_id}", response_model=HomeworkOut)
async def get_homework(homework_id: str, _principal: CurrentUser) -> HomeworkOut:
    return HomeworkOut.model_validate(await homework_service.get_homework(homework_id))


@router.patch("/{homework_id}", response_model=HomeworkOut)
async def update_homework(
    homework_id: str, payload: HomeworkUpdateIn, _principal: Teaching
) -> HomeworkOut:
    homework = await homework_service.update_homework(
        homework_id, **payload.model_dump()
    )
    return HomeworkOut.model_validate(homework)


@router.delete("/{homework_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_homework(homework_id: str, _principal: Teaching) -> None:
    await homework_service.delete_homework(homework_id)


@router.post(
    "/{homework_id}/submissions",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_homework(
    homework_id: str, payload: SubmissionIn, principal: CurrentUser
) -> SubmissionOut:
    submission = await homework_service.create_submission(
        homework_id=homework_id,
        student_id=principal.user_id,
        content=payload.content,
    )
    return SubmissionOut.model_validate(submission)


@router.get("/{homework_id}/submissions", response_model=list[SubmissionOut])
async def homework_submissions(
    homework_id: str, _principal: Staff
) -> list[SubmissionOut]:
    found = await homework_service.list_submissions_by_homework(homework_id)
    return [SubmissionOut.model_validate(s) for s in found]
