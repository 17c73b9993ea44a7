from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict

from lms.api.dependencies import MANAGERS, STAFF, require_any_role
from lms.models.principal import Principal
from lms.wiring import group_service

router = APIRouter(prefix="/groups", tags=["groups"])

Staff = Annotated[Principal, Depends(require_any_role(STAFF))]
Managers = Annotated[Principal, Depends(require_any_role(MANAGERS))]


class GroupIn(BaseModel):
    name: str
    description: str = ""


class GroupUpdateIn(BaseModel):
    name: str | None = None
    description: str | None = None


class MemberIn(BaseModel):
    student_id: str


class GroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    students: list[UUID]


@router.get("", response_model=list[GroupOut])
async def list_groups(_principal: Staff) -> list[GroupOut]:
    return [GroupOut.model_validate(g) for g in await group_service.list_groups()]


@router.post("", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
async def create_group(payload: GroupIn, _principal: Managers) -> GroupOut:
    return GroupOut.model_validate(
        await group_service.create_group(**payload.model_dump())
    )


@router.get("/{group_id}", response_model=GroupOut)
async def get_group(group_id: str, _principal: Staff) -> GroupOut:
    return GroupOut.model_validate(await group_service.get_group(group_id))


@router.patch("/{group_id}", response_model=GroupOut)
async def update_group(
    group_id: str, payload: GroupUpdateIn, _principal: Managers
) -> GroupOut:
    return GroupOut.model_validate(
        await group_service.update_group(group_id, **payload.model_dump())
    )


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: str, _principal: Managers) -> None:
    await group_service.delete_group(group_id)


@router.post("/{group_id}/students", response_model=GroupOut)
async def add_student(
    group_id: str, payload: MemberIn, _principal: Managers
) -> GroupOut:
    return GroupOut.model_validate(
        await group_service.add_student(group_id, payload.student_id)
    )


@router.delete("/{group_id}/students/{student_id}", response_model=GroupOut)
async def remove_student(
    group_id: str, student_id: str, _principal: Managers
) -> GroupOut:
    return GroupOut.model_validate(
        await group_service.remove_student(group_id, student_id)
    )
