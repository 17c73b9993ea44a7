from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict

from lms.api.dependencies import MANAGERS, CurrentUser, require_any_role
from lms.models.principal import Principal
from lms.wiring import stream_service

router = APIRouter(prefix="/streams", tags=["streams"])

Managers = Annotated[Principal, Depends(require_any_role(MANAGERS))]


class StreamIn(BaseModel):
    course_id: str
    name: str
    start_date: datetime
    end_date: datetime


class StreamUpdateIn(BaseModel):
    name: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class MemberIn(BaseModel):
    student_id: str


class StreamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    name: str
    start_date: datetime
    end_date: datetime
    students: list[UUID]


@router.get("", response_model=list[StreamOut])
async def list_streams(
    _principal: CurrentUser, course_id: str | None = None
) -> list[StreamOut]:
    found = await stream_service.list_streams(course_id)
    return [StreamOut.model_validate(s) for s in found]


@router.post("", response_model=StreamOut, status_code=status.HTTP_201_CREATED)
async def create_stream(payload: StreamIn, _principal: Managers) -> StreamOut:
    return StreamOut.model_validate(
        await stream_service.create_stream(**payload.model_dump())
    )


@router.get("/{stream_id}", response_model=StreamOut)
async def get_stream(stream_id: str, _principal: CurrentUser) -> StreamOut:
    return StreamOut.model_validate(await stream_service.get_stream(stream_id))


@router.patch("/{stream_id}", response_model=StreamOut)
async def update_stream(
    stream_id: str, payload: StreamUpdateIn, _principal: Managers
) -> StreamOut:
    return StreamOut.model_validate(
        await stream_service.update_stream(stream_id, **payload.model_dump())
    )


@router.delete("/{stream_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stream(stream_id: str, _principal: Managers) -> None:
    await stream_service.delete_stream(stream_id)


@router.post("/{stream_id}/students", response_model=StreamOut)
async def add_student(
    stream_id: str, payload: MemberIn, _principal: Managers
) -> StreamOut:
    return StreamOut.model_validate(
        await stream_service.add_student(stream_id, payload.student_id)
    )
