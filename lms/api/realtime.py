"""WebSocket endpoint for live notifications, progress and activity.

Clients connect to /ws with a bearer token (Authorization header or
`?token=`) and send JSON frames {"event": ..., "data": {...}}:

  subscribe           {"userId"}    -> `notification` events
  subscribe-progress  {"userId"}    -> `progress-update` events
  subscribe-activity  {"courseId"}  -> `activity-update` events (staff)

Subscribing to progress or activity pushes the current state right away.
Problems are reported back as an `error` event; the socket stays open.
"""

from __future__ import annotations

import json
import logging

import jwt
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from lms.models.principal import Principal
from lms.services import token_service
from lms.services.enrollments_service import progress_payload
from lms.services.errors import LmsError
from lms.services.realtime import activity_room, manager, progress_room, user_room
from lms.wiring import analytics_service, enrollment_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _principal(websocket: WebSocket) -> Principal | None:
    token = websocket.query_params.get("token")
    auth_header = websocket.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1]
    if not token:
        return None
    try:
        claims = token_service.decode_access_token(token)
    except jwt.InvalidTokenError as e:
        logger.warning("WebSocket token rejected: %s", e)
        return None
    return Principal(user_id=claims["sub"], roles=frozenset(claims.get("roles", [])))


async def _error(websocket: WebSocket, message: str, error: str) -> None:
    await websocket.send_json(
        {"event": "error", "data": {"message": message, "error": error}}
    )


async def _subscribe_user(
    websocket: WebSocket, principal: Principal, user_id: str
) -> bool:
    if user_id != principal.user_id and not principal.is_staff():
        await _error(websocket, "Subscription refused", "Insufficient permissions")
        return False
    return True


async def _handle(websocket: WebSocket, principal: Principal, frame: dict) -> None:
    event = frame.get("event")
    data = frame.get("data") or {}
    if not isinstance(data, dict):
        await _error(websocket, "Malformed frame", "expected data to be an object")
        return

    if event == "subscribe":
        user_id = str(data.get("userId", ""))
        if await _subscribe_user(websocket, principal, user_id):
            manager.join(websocket, user_room(user_id))
            await websocket.send_json(
                {"event": "subscribed", "data": {"room": user_room(user_id)}}
            )

    elif event == "subscribe-progress":
        user_id = str(data.get("userId", ""))
        if not await _subscribe_user(websocket, principal, user_id):
            return
        try:
            detailed = await enrollment_service.get_detailed_student_progress(user_id)
        except LmsError as exc:
            await _error(websocket, "Could not load progress", exc.detail)
            return
        manager.join(websocket, progress_room(user_id))
        for row in detailed.progress:
            await websocket.send_json(
                {"event": "progress-update", "data": progress_payload(row)}
            )

    elif event == "subscribe-activity":
        if not principal.is_staff():
            await _error(websocket, "Subscription refused", "Insufficient permissions")
            return
        course_id = str(data.get("courseId", ""))
        manager.join(websocket, activity_room(course_id))
        try:
            # publishes activity-update to the room just joined
            await analytics_service.course_activity(course_id)
        except LmsError as exc:
            await _error(websocket, "Could not load activity", exc.detail)

    else:
        await _error(websocket, "Unknown event", str(event))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    principal = _principal(websocket)
    if principal is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(websocket)
    logger.info("WebSocket connected user=%s", principal.user_id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await _error(websocket, "Malformed frame", "expected JSON")
                continue
            if not isinstance(frame, dict):
                await _error(websocket, "Malformed frame", "expected an object")
                continue
            await _handle(websocket, principal, frame)
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected user=%s", principal.user_id)
    finally:
        manager.disconnect(websocket)
