"""Role guards: who may call what.

Ids are random, so a request that passes the guard ends in 404 or 422;
only 401 and 403 come from the guards themselves.
"""

from __future__ import annotations

import uuid

import pytest

from tests.conftest import auth, mint_token

_ID = str(uuid.uuid4())

# (method, path, json body)
_MANAGER_ONLY = [
    ("POST", "/enrollments", {"student_id": _ID, "course_id": _ID}),
    ("GET", "/enrollments/export/csv", None),
    ("GET", "/admin/users", None),
    ("GET", "/admin/activity", None),
    ("POST", "/streams", {"course_id": _ID, "name": "Spring"}),
    ("PUT", "/notifications/templates/welcome", {"message": "hi"}),
    ("GET", "/analytics/overall", None),
]
_TEACHING_ONLY = [
    ("POST", "/courses", {"title": "New"}),
    ("PUT", f"/enrollments/{_ID}/complete", {"grade": 90}),
    ("DELETE", f"/courses/{_ID}", None),
]
_STAFF_ONLY = [
    ("GET", "/users", None),
    ("POST", "/notifications", {"user_id": _ID, "message": "m"}),
    ("POST", f"/notifications/{_ID}/send", {"user_id": _ID}),
    ("GET", f"/enrollments/course/{_ID}", None),
    ("GET", f"/quizzes/{_ID}/submissions", None),
]
_ADMIN_ONLY = [
    ("POST", "/users", {"email": "x@example.com", "password": "long-enough"}),
    ("PUT", f"/users/{_ID}/roles", {"roles": ["teacher"]}),
    ("DELETE", f"/users/{_ID}", None),
]


def _case_id(case: tuple) -> str:
    method, path, *_ = case
    return f"{method} {path.replace(_ID, '<id>')}"


def _call(client, method: str, path: str, body, token: str | None):
    return client.request(method, path, json=body, headers=auth(token))


def _denied(endpoints, roles):
    return [(*ep, role) for ep in endpoints for role in roles]


_DENIED = (
    _denied(_MANAGER_ONLY, ["student", "teacher", "assistant"])
    + _denied(_TEACHING_ONLY, ["student", "assistant"])
    + _denied(_STAFF_ONLY, ["student"])
    + _denied(_ADMIN_ONLY, ["student", "teacher", "manager"])
)
_ALLOWED = (
    _denied(_MANAGER_ONLY, ["admin", "manager"])
    + _denied(_TEACHING_ONLY, ["admin", "manager", "teacher"])
    + _denied(_STAFF_ONLY, ["admin", "assistant"])
    + _denied(_ADMIN_ONLY, ["admin"])
)


def _full_id(case: tuple) -> str:
    return f"{_case_id(case)} as {case[-1]}"


@pytest.mark.parametrize(
    "case", _MANAGER_ONLY + _TEACHING_ONLY + _STAFF_ONLY + _ADMIN_ONLY, ids=_case_id
)
def test_anonymous_gets_401(client, case) -> None:
    method, path, body = case
    resp = _call(client, method, path, body, None)
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.parametrize("case", _DENIED, ids=_full_id)
def test_missing_role_gets_403(client, case) -> None:
    method, path, body, role = case
    resp = _call(client, method, path, body, mint_token(roles=[role]))
    assert resp.status_code == 403
    assert resp.json() == {"detail": "Insufficient permissions"}


@pytest.mark.parametrize("case", _ALLOWED, ids=_full_id)
def test_allowed_role_passes_guard(client, case) -> None:
    method, path, body, role = case
    resp = _call(client, method, path, body, mint_token(roles=[role]))
    assert resp.status_code not in (401, 403)


def test_garbage_token_rejected(client) -> None:
    resp = client.get("/courses", headers=auth("not-a-jwt"))
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Invalid token"}


def test_student_cannot_read_another_students_progress(client) -> None:
    token = mint_token(sub=str(uuid.uuid4()), roles=["student"])
    resp = client.get(f"/enrollments/progress/{_ID}", headers=auth(token))
    assert resp.status_code == 403
