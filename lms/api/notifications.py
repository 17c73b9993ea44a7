"""Notification records, bulk sends and message templates.

The send endpoints only enqueue: they answer 202 Accepted and the
worker process performs the delivery.
"""

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
)
from lms.models.notification import Notification
from lms.models.principal import Principal
from lms.services.task_queue import (
    BULK_NOTIFICATION_DELIVERY,
    NOTIFICATION_DELIVERY,
    task_queue,
)
from lms.wiring import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

Staff = Annotated[Principal, Depends(require_any_role(STAFF))]


class NotificationIn(BaseModel):
    user_id: str
    message: str
    title: str | None = None


class BulkNotificationIn(BaseModel):
    recipients: list[str]
    message: str
    title: str | None = None


class SendIn(BaseModel):
    user_id: str


class SendBulkIn(BaseModel):
    recipient_ids: list[str] | None = None


class TemplateIn(BaseModel):
    message: str
    title: str | None = None


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    message: str
    title: str | None
    key: str | None
    user_id: UUID | None
    recipients: list[UUID]
    is_read: bool
    is_sent: bool
    sent_at: datetime | None
    created_at: datetime | None


class BulkOut(BaseModel):
    notification: NotificationOut
    delivered: list[UUID]
    failed: list[UUID]


class QueuedOut(BaseModel):
    task_id: str
    status: str = "queued"


def notification_out(n: Notification) -> NotificationOut:
    return NotificationOut.model_validate(n)


def _ensure_addressee(principal: Principal, n: Notification) -> None:
    if principal.is_staff():
        return
    if n.user_id is not None and str(n.user_id) == principal.user_id:
        return
    if principal.user_id in {str(r) for r in n.recipients}:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
    )


@router.get("", response_model=list[NotificationOut])
async def my_notifications(principal: CurrentUser) -> list[NotificationOut]:
    found = await notification_service.list_for_user(principal.user_id)
    return [notification_out(n) for n in found]


@router.get("/user/{user_id}", response_model=list[NotificationOut])
async def user_notifications(
    user_id: str, principal: CurrentUser
) -> list[NotificationOut]:
    ensure_self_or_staff(principal, user_id)
    found = await notification_service.list_for_user(user_id)
    return [notification_out(n) for n in found]


@router.post("", response_model=NotificationOut, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationIn, _principal: Staff
) -> NotificationOut:
    notification = await notification_service.create_notification(
        **payload.model_dump()
    )
    return notification_out(notification)


@router.post("/bulk", response_model=BulkOut, status_code=status.HTTP_201_CREATED)
async def create_bulk(payload: BulkNotificationIn, principal: Staff) -> BulkOut:
    result = await notification_service.create_bulk_notification(
        **payload.model_dump()
    )
    logger.info(
        "Bulk notification %s sent by user=%s",
        result.notification.id,
        principal.user_id,
    )
    return BulkOut(
        notification=notification_out(result.notification),
        delivered=result.delivered,
        failed=result.failed,
    )


# --- templates ---


@router.get("/templates", response_model=list[NotificationOut])
async def list_templates(_principal: Staff) -> list[NotificationOut]:
    return [notification_out(t) for t in await notification_service.list_templates()]


@router.put("/templates/{key}", response_model=NotificationOut)
async def upsert_template(
    key: str,
    payload: TemplateIn,
    _principal: Annotated[Principal, Depends(require_any_role(MANAGERS))],
) -> NotificationOut:
    record = await notification_service.upsert_template(
        key=key, message=payload.message, title=payload.title
    )
    return notification_out(record)


# --- single record ---


@router.get("/{notification_id}", response_model=NotificationOut)
async def get_notification(
    notification_id: str, principal: CurrentUser
) -> NotificationOut:
    notification = await notification_service.get(notification_id)
    _ensure_addressee(principal, notification)
    return notification_out(notification)


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(notification_id: str, principal: CurrentUser) -> NotificationOut:
    notification = await notification_service.get(notification_id)
    _ensure_addressee(principal, notification)
    return notification_out(await notification_service.mark_read(notification.id))


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(notification_id: str, _principal: Staff) -> None:
    await notification_service.delete(notification_id)


@router.post(
    "/{notification_id}/send",
    response_model=QueuedOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def send_to_user(
    notification_id: str, payload: SendIn, _principal: Staff
) -> QueuedOut:
    notification = await notification_service.get(notification_id)
    task = await task_queue.enqueue(
        NOTIFICATION_DELIVERY,
        {"notification_id": str(notification.id), "user_id": payload.user_id},
    )
    logger.info("Queued delivery task=%s notification=%s", task.id, notification.id)
    return QueuedOut(task_id=task.id)


@router.post(
    "/{notification_id}/send-bulk",
    response_model=QueuedOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def send_to_bulk(
    notification_id: str, payload: SendBulkIn, _principal: Staff
) -> QueuedOut:
    notification = await notification_service.get(notification_id)
    task = await task_queue.enqueue(
        BULK_NOTIFICATION_DELIVERY,
        {
            "notification_id": str(notification.id),
            "recipient_ids": payload.recipient_ids,
        },
    )
    logger.info(
        "Queued bulk delivery task=%s notification=%s", task.id, notification.id
    )
    return QueuedOut(task_id=task.id)
