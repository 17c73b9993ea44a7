from __future__ import annotations

import uuid

import pytest
from starlette.websockets import WebSocketDisconnect

from lms.services.realtime import manager
from tests.conftest import auth, mint_token, seed_course, seed_user, token_for


def test_connection_without_token_is_closed(client) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_invalid_token_is_closed(client) -> None:
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws?token=garbage") as ws:
            ws.receive_json()


def test_subscribe_to_own_room(client) -> None:
    user_id = str(uuid.uuid4())
    token = mint_token(sub=user_id, roles=["student"])
    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "subscribe", "data": {"userId": user_id}})
        assert ws.receive_json() == {
            "event": "subscribed",
            "data": {"room": f"user:{user_id}"},
        }
        assert f"user:{user_id}" in manager.rooms


def test_bearer_header_is_accepted(client) -> None:
    user_id = str(uuid.uuid4())
    headers = auth(mint_token(sub=user_id, roles=["student"]))
    with client.websocket_connect("/ws", headers=headers) as ws:
        ws.send_json({"event": "subscribe", "data": {"userId": user_id}})
        assert ws.receive_json()["event"] == "subscribed"


def test_student_cannot_subscribe_to_someone_else(client) -> None:
    token = mint_token(sub=str(uuid.uuid4()), roles=["student"])
    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "subscribe", "data": {"userId": str(uuid.uuid4())}})
        frame = ws.receive_json()
    assert frame["event"] == "error"
    assert frame["data"]["error"] == "Insufficient permissions"


def test_staff_may_subscribe_to_any_user(client) -> None:
    token = mint_token(sub="teacher-1", roles=["teacher"])
    other = str(uuid.uuid4())
    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "subscribe", "data": {"userId": other}})
        assert ws.receive_json()["data"] == {"room": f"user:{other}"}


def test_subscribe_progress_pushes_current_state(client, admin_token) -> None:
    student = seed_user()
    course, _ = seed_course(title="Realtime 101")
    client.post(
        "/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(admin_token),
    )
    with client.websocket_connect(f"/ws?token={token_for(student)}") as ws:
        ws.send_json(
            {"event": "subscribe-progress", "data": {"userId": str(student.id)}}
        )
        frame = ws.receive_json()
    assert frame["event"] == "progress-update"
    assert frame["data"]["course_title"] == "Realtime 101"
    assert frame["data"]["completion_percentage"] == 0.0


def test_student_cannot_watch_course_activity(client) -> None:
    token = mint_token(sub=str(uuid.uuid4()), roles=["student"])
    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json(
            {"event": "subscribe-activity", "data": {"courseId": str(uuid.uuid4())}}
        )
        assert ws.receive_json()["data"]["error"] == "Insufficient permissions"


def test_unknown_event_and_malformed_frames_keep_socket_open(client) -> None:
    token = mint_token(sub="u-1", roles=["student"])
    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "dance"})
        assert ws.receive_json()["data"]["message"] == "Unknown event"
        ws.send_text("{not json")
        assert ws.receive_json()["data"]["message"] == "Malformed frame"
        ws.send_text("[1, 2]")
        assert ws.receive_json()["data"]["error"] == "expected an object"
        ws.send_json({"event": "subscribe", "data": {"userId": "u-1"}})
        assert ws.receive_json()["event"] == "subscribed"


@pytest.mark.parametrize("data", ["oops", ["u-1"], 42])
def test_non_object_data_is_rejected_without_closing(client, data) -> None:
    token = mint_token(sub="u-1", roles=["student"])
    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "subscribe", "data": data})
        frame = ws.receive_json()
        assert frame["event"] == "error"
        assert frame["data"] == {
            "message": "Malformed frame",
            "error": "expected data to be an object",
        }
        ws.send_json({"event": "subscribe", "data": {"userId": "u-1"}})
        assert ws.receive_json()["event"] == "subscribed"
