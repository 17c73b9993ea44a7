from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict

from lms.api.dependencies import TEACHING, CurrentUser, require_any_role
from lms.models.principal import Principal
from lms.wiring import course_service, enrollment_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["courses"])

Teaching = Annotated[Principal, Depends(require_any_role(TEACHING))]


class CourseIn(BaseModel):
    title: str
    description: str = ""
    teacher_id: str | None = None


class CourseUpdateIn(BaseModel):
    title: str | None = None
    description: str | None = None


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    teacher_id: UUID | None
    created_at: datetime | None


class ModuleIn(BaseModel):
    title: str
    position: int | None = None


class ModuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    position: int


class LessonIn(BaseModel):
    title: str
    content: str = ""
    points: int = 1
    position: int | None = None


class LessonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    module_id: UUID
    title: str
    content: str
    points: int
    position: int


class LeaderboardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    student_id: UUID
    name: str
    points: int
    completion_percentage: float


# --- courses ---


@router.get("/courses", response_model=list[CourseOut])
async def list_courses(_principal: CurrentUser) -> list[CourseOut]:
    return [CourseOut.model_validate(c) for c in await course_service.list_courses()]


@router.post("/courses", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(payload: CourseIn, principal: Teaching) -> CourseOut:
    teacher_id = payload.teacher_id
    if teacher_id is None and principal.has_role("teacher"):
        teacher_id = principal.user_id
    course = await course_service.create_course(
        title=payload.title, description=payload.description, teacher_id=teacher_id
    )
    return CourseOut.model_validate(course)


@router.get("/courses/{course_id}", response_model=CourseOut)
async def get_course(course_id: str, _principal: CurrentUser) -> CourseOut:
    return CourseOut.model_validate(await course_service.get_course(course_id))


@router.patch("/courses/{course_id}", response_model=CourseOut)
async def update_course(
    course_id: str, payload: CourseUpdateIn, _principal: Teaching
) -> CourseOut:
    course = await course_service.update_course(course_id, **payload.model_dump())
    return CourseOut.model_validate(course)


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(course_id: str, _principal: Teaching) -> None:
    await course_service.delete_course(course_id)


@router.get("/courses/{course_id}/structure")
async def course_structure(course_id: str, _principal: CurrentUser) -> dict:
    return await course_service.get_structure(course_id)


@router.get("/courses/{course_id}/leaderboard", response_model=list[LeaderboardOut])
async def course_leaderboard(
    course_id: str,
    _principal: CurrentUser,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[LeaderboardOut]:
    rows = await enrollment_service.leaderboard(course_id, limit)
    return [LeaderboardOut.model_validate(r) for r in rows]


# --- modules and lessons ---


@router.get("/courses/{course_id}/modules", response_model=list[ModuleOut])
async def list_modules(course_id: str, _principal: CurrentUser) -> list[ModuleOut]:
    modules = await course_service.list_modules(course_id)
    return [ModuleOut.model_validate(m) for m in modules]


@router.post(
    "/courses/{course_id}/modules",
    response_model=ModuleOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_module(
    course_id: str, payload: ModuleIn, _principal: Teaching
) -> ModuleOut:
    module = await course_service.add_module(
        course_id, title=payload.title, position=payload.position
    )
    return ModuleOut.model_validate(module)


@router.get("/modules/{module_id}/lessons", response_model=list[LessonOut])
async def list_lessons(module_id: str, _principal: CurrentUser) -> list[LessonOut]:
    lessons = await course_service.list_lessons(module_id)
    return [LessonOut.model_validate(lsn) for lsn in lessons]


@router.post(
    "/modules/{module_id}/lessons",
    response_model=LessonOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_lesson(
    module_id: str, payload: LessonIn, _principal: Teaching
) -> LessonOut:
    lesson = await course_service.add_lesson(module_id, **payload.model_dump())
    return LessonOut.model_validate(lesson)


@router.get("/lessons/{lesson_id}", response_model=LessonOut)
async def get_lesson(lesson_id: str, _principal: CurrentUser) -> LessonOut:
    return LessonOut.model_validate(await course_service.get_lesson(lesson_id))
