from __future__ import annotations

import asyncio

from lms.services.task_queue import NOTIFICATION_DELIVERY, task_queue
from lms.worker import drain
from tests.conftest import auth, mint_token, seed_user, token_for


def _staff() -> dict[str, str]:
    return auth(mint_token(sub="assistant-1", roles=["assistant"]))


def _create(client, user, message: str = "Welcome aboard") -> dict:
    resp = client.post(
        "/notifications",
        json={"user_id": str(user.id), "message": message, "title": "Hello"},
        headers=_staff(),
    )
    assert resp.status_code == 201
    return resp.json()


def test_create_stores_unsent_record(client) -> None:
    user = seed_user()
    body = _create(client, user)
    assert body["user_id"] == str(user.id)
    assert body["is_sent"] is False
    assert body["is_read"] is False


def test_create_for_unknown_user_is_404(client) -> None:
    resp = client.post(
        "/notifications",
        json={"user_id": "00000000-0000-0000-0000-000000000001", "message": "x"},
        headers=_staff(),
    )
    assert resp.status_code == 404


def test_send_is_queued_then_delivered_by_worker(client) -> None:
    user = seed_user()
    created = _create(client, user)

    resp = client.post(
        f"/notifications/{created['id']}/send",
        json={"user_id": str(user.id)},
        headers=_staff(),
    )
    assert resp.status_code == 202
    assert resp.json()["status"] == "queued"
    assert asyncio.run(task_queue.queue_length(NOTIFICATION_DELIVERY)) == 1

    assert asyncio.run(drain()) == 1
    resp = client.get(f"/notifications/{created['id']}", headers=_staff())
    assert resp.json()["is_sent"] is True
    assert resp.json()["sent_at"] is not None


def test_send_unknown_notification_is_404(client) -> None:
    user = seed_user()
    resp = client.post(
        "/notifications/00000000-0000-0000-0000-000000000002/send",
        json={"user_id": str(user.id)},
        headers=_staff(),
    )
    assert resp.status_code == 404
    assert asyncio.run(task_queue.queue_length(NOTIFICATION_DELIVERY)) == 0


def test_bulk_delivers_immediately(client) -> None:
    users = [seed_user(), seed_user()]
    resp = client.post(
        "/notifications/bulk",
        json={"recipients": [str(u.id) for u in users], "message": "Exam on Friday"},
        headers=_staff(),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert sorted(body["delivered"]) == sorted(str(u.id) for u in users)
    assert body["failed"] == []
    assert body["notification"]["is_sent"] is True


def test_bulk_with_no_recipients_is_400(client) -> None:
    resp = client.post(
        "/notifications/bulk",
        json={"recipients": [], "message": "nobody"},
        headers=_staff(),
    )
    assert resp.status_code == 400


def test_addressee_reads_and_marks_read(client) -> None:
    user, other = seed_user(), seed_user()
    created = _create(client, user)

    mine = client.get("/notifications", headers=auth(token_for(user)))
    assert [n["id"] for n in mine.json()] == [created["id"]]

    url = f"/notifications/{created['id']}"
    assert client.get(url, headers=auth(token_for(other))).status_code == 403
    resp = client.patch(f"{url}/read", headers=auth(token_for(user)))
    assert resp.status_code == 200
    assert resp.json()["is_read"] is True


def test_template_upsert_and_list(client, admin_token) -> None:
    resp = client.put(
        "/notifications/templates/new_course",
        json={"message": "Welcome to {course_title}", "title": "Enrolled"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["key"] == "new_course"

    listed = client.get("/notifications/templates", headers=_staff())
    assert [t["key"] for t in listed.json()] == ["new_course"]
