"""In-process WebSocket room manager.

Clients join rooms by subscribing (see lms/api/realtime.py):

  user:{user_id}        receives `notification`
  progress:{user_id}    receives `progress-update`
  activity:{course_id}  receives `activity-update`

Every frame is JSON: {"event": ..., "data": ...}.
"""

from __future__ import annotations

import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from lms.core.metrics import WEBSOCKET_CONNECTIONS

logger = logging.getLogger(__name__)


def user_room(user_id: object) -> str:
    return f"user:{user_id}"


def progress_room(user_id: object) -> str:
    return f"progress:{user_id}"


def activity_room(course_id: object) -> str:
    return f"activity:{course_id}"


class ConnectionManager:
    def __init__(self) -> None:
        self.rooms: dict[str, set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        WEBSOCKET_CONNECTIONS.inc()

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, set()).add(websocket)
        logger.debug("WebSocket joined room=%s", room)

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self.rooms):
            members = self.rooms[room]
            members.discard(websocket)
            if not members:
                del self.rooms[room]
        WEBSOCKET_CONNECTIONS.dec()

    def subscribers(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    async def publish(self, room: str, event: str, data: dict) -> int:
        """Send one event to every socket in the room.  Returns sockets reached."""
        delivered = 0
        for websocket in list(self.rooms.get(room, ())):
            if websocket.client_state != WebSocketState.CONNECTED:
                self._drop(room, websocket)
                continue
            try:
                await websocket.send_json({"event": event, "data": data})
                delivered += 1
            except (RuntimeError, OSError):
                logger.warning("Dropping dead WebSocket from room=%s", room)
                self._drop(room, websocket)
        return delivered

    def _drop(self, room: str, websocket: WebSocket) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[room]


manager = ConnectionManager()
