from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict

from lms.api.dependencies import (
    MANAGERS,
    STAFF,
    CurrentUser,
    ensure_self_or_staff,
    require_any_role,
    require_role,
)
from lms.models.principal import Principal
from lms.models.user import User
from lms.wiring import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class SettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    notifications: bool
    email: bool
    telegram: bool
    sms: bool
    websocket: bool
    language: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    roles: list[str]
    is_active: bool
    phone: str | None
    telegram_id: str | None
    groups: list[UUID]
    settings: SettingsOut
    created_at: datetime | None


def user_out(user: User) -> UserOut:
    return UserOut.model_validate(user)


class UserCreateIn(BaseModel):
    email: str
    password: str
    name: str = ""
    roles: list[str] = ["student"]
    phone: str | None = None
    telegram_id: str | None = None


class UserUpdateIn(BaseModel):
    name: str | None = None
    phone: str | None = None
    is_active: bool | None = None


class SettingsIn(BaseModel):
    notifications: bool | None = None
    email: bool | None = None
    telegram: bool | None = None
    sms: bool | None = None
    websocket: bool | None = None
    language: str | None = None


class TelegramIn(BaseModel):
    telegram_id: str


class RolesIn(BaseModel):
    roles: list[str]


def _ensure_self(principal: Principal, user_id: str) -> None:
    if principal.user_id != user_id and not principal.has_any_role(set(MANAGERS)):
        logger.warning(
            "Access denied: user=%s tried to modify user=%s",
            principal.user_id,
            user_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )


@router.get("", response_model=list[UserOut])
async def list_users(
    _principal: Annotated[Principal, Depends(require_any_role(STAFF))],
    role: str | None = None,
) -> list[UserOut]:
    return [user_out(u) for u in await user_service.list_users(role)]


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> UserOut:
    user = await user_service.create_user(**payload.model_dump())
    logger.info("User %s created by admin=%s", user.id, principal.user_id)
    return user_out(user)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: str, principal: CurrentUser) -> UserOut:
    ensure_self_or_staff(principal, user_id)
    return user_out(await user_service.get_user(user_id))


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str, payload: UserUpdateIn, principal: CurrentUser
) -> UserOut:
    _ensure_self(principal, user_id)
    changes = payload.model_dump()
    if changes["is_active"] is not None and not principal.has_any_role(set(MANAGERS)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only managers can change is_active",
        )
    return user_out(await user_service.update_user(user_id, **changes))


@router.put("/{user_id}/settings", response_model=UserOut)
async def update_settings(
    user_id: str, payload: SettingsIn, principal: CurrentUser
) -> UserOut:
    _ensure_self(principal, user_id)
    changes = payload.model_dump(exclude_none=True)
    return user_out(await user_service.update_settings(user_id, changes))


@router.post("/{user_id}/telegram", response_model=UserOut)
async def connect_telegram(
    user_id: str, payload: TelegramIn, principal: CurrentUser
) -> UserOut:
    _ensure_self(principal, user_id)
    return user_out(await user_service.connect_telegram(user_id, payload.telegram_id))


@router.put("/{user_id}/roles", response_model=UserOut)
async def set_roles(
    user_id: str,
    payload: RolesIn,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> UserOut:
    user = await user_service.set_roles(user_id, payload.roles)
    logger.info("Roles of user=%s changed by admin=%s", user.id, principal.user_id)
    return user_out(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    _principal: Annotated[Principal, Depends(require_role("admin"))],
) -> None:
    await user_service.delete_user(user_id)
