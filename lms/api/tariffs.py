from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict

from lms.api.dependencies import MANAGERS, CurrentUser, require_any_role
from lms.models.principal import Principal
from lms.wiring import tariff_service

router = APIRouter(prefix="/tariffs", tags=["tariffs"])

Managers = Annotated[Principal, Depends(require_any_role(MANAGERS))]


class TariffIn(BaseModel):
    course_id: str
    name: str
    price: float
    accessible_modules: list[str] = []
    includes_homeworks: bool = False
    includes_points: bool = False


class TariffUpdateIn(BaseModel):
    name: str | None = None
    price: float | None = None
    includes_homeworks: bool | None = None
    includes_points: bool | None = None


class TariffOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    name: str
    price: float
    accessible_modules: list[UUID]
    includes_homeworks: bool
    includes_points: bool


@router.get("", response_model=list[TariffOut])
async def list_tariffs(
    _principal: CurrentUser, course_id: str | None = None
) -> list[TariffOut]:
    found = await tariff_service.list_tariffs(course_id)
    return [TariffOut.model_validate(t) for t in found]


@router.post("", response_model=TariffOut, status_code=status.HTTP_201_CREATED)
async def create_tariff(payload: TariffIn, _principal: Managers) -> TariffOut:
    return TariffOut.model_validate(
        await tariff_service.create_tariff(**payload.model_dump())
    )


@router.get("/{tariff_id}", response_model=TariffOut)
async def get_tariff(tariff_id: str, _principal: CurrentUser) -> TariffOut:
    return TariffOut.model_validate(await tariff_service.get_tariff(tariff_id))


@router.patch("/{tariff_id}", response_model=TariffOut)
async def update_tariff(
    tariff_id: str, payload: TariffUpdateIn, _principal: Managers
) -> TariffOut:
    return TariffOut.model_validate(
        await tariff_service.update_tariff(tariff_id, **payload.model_dump())
    )


@router.delete("/{tariff_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tariff(tariff_id: str, _principal: Managers) -> None:
    await tariff_service.delete_tariff(tariff_id)
