"""JSON auth endpoints: signup, login, password reset, current user.

Login and signup both return {access_token, token_type, user} so a
client can store the token and continue without a second request.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel

from lms.api.dependencies import CurrentUser
from lms.api.users import UserOut, user_out
from lms.models.user import User
from lms.services import token_service
from lms.wiring import auth_service, user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str
    password: str


class SignupIn(BaseModel):
    email: str
    password: str
    name: str = ""
    phone: str | None = None
    telegram_id: str | None = None


class ForgotPasswordIn(BaseModel):
    email: str


class ResetPasswordIn(BaseModel):
    token: str
    new_password: str


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class MessageOut(BaseModel):
    detail: str


def _issue(user: User) -> AuthResponse:
    token = token_service.create_access_token(sub=str(user.id), roles=list(user.roles))
    return AuthResponse(access_token=token, user=user_out(user))


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginIn) -> AuthResponse:
    user = await auth_service.authenticate(payload.email, payload.password)
    logger.info("Login succeeded user_id=%s", user.id)
    return _issue(user)


@router.post(
    "/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def signup(payload: SignupIn) -> AuthResponse:
    user = await user_service.create_user(**payload.model_dump())
    logger.info("User signed up user_id=%s", user.id)
    return _issue(user)


@router.post(
    "/forgot-password",
    response_model=MessageOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def forgot_password(payload: ForgotPasswordIn) -> MessageOut:
    await auth_service.forgot_password(payload.email)
    return MessageOut(detail="If the email is registered, a reset token was sent")


@router.post("/reset-password", response_model=MessageOut)
async def reset_password(payload: ResetPasswordIn) -> MessageOut:
    await auth_service.reset_password(payload.token, payload.new_password)
    return MessageOut(detail="Password updated")


@router.get("/me", response_model=UserOut)
async def me(principal: CurrentUser) -> UserOut:
    return user_out(await user_service.get_user(principal.user_id))
