from __future__ import annotations

from tests.conftest import auth, mint_token, seed_user, token_for


def test_admin_creates_user_with_roles(client, admin_token) -> None:
    resp = client.post(
        "/users",
        json={
            "email": "new.teacher@example.com",
            "password": "long-enough",
            "roles": ["teacher"],
        },
        headers=auth(admin_token),
    )
    assert resp.status_code == 201
    assert resp.json()["roles"] == ["teacher"]
    assert resp.json()["settings"]["language"] == "en"


def test_unknown_role_is_400(client, admin_token) -> None:
    resp = client.post(
        "/users",
        json={"email": "x@example.com", "password": "long-enough", "roles": ["god"]},
        headers=auth(admin_token),
    )
    assert resp.status_code == 400


def test_staff_lists_users_by_role(client) -> None:
    seed_user("teacher")
    seed_user()
    seed_user()
    headers = auth(mint_token(roles=["assistant"]))
    assert len(client.get("/users", headers=headers).json()) == 3
    students = client.get("/users", params={"role": "student"}, headers=headers)
    assert len(students.json()) == 2


def test_user_reads_own_profile_only(client) -> None:
    me, other = seed_user(), seed_user()
    headers = auth(token_for(me))
    assert client.get(f"/users/{me.id}", headers=headers).status_code == 200
    assert client.get(f"/users/{other.id}", headers=headers).status_code == 403


def test_update_own_settings(client) -> None:
    user = seed_user()
    resp = client.put(
        f"/users/{user.id}/settings",
        json={"sms": True, "language": "de"},
        headers=auth(token_for(user)),
    )
    assert resp.status_code == 200
    settings = resp.json()["settings"]
    assert settings["sms"] is True
    assert settings["language"] == "de"
    assert settings["email"] is True


def test_student_cannot_deactivate_self(client) -> None:
    user = seed_user()
    resp = client.patch(
        f"/users/{user.id}",
        json={"is_active": False},
        headers=auth(token_for(user)),
    )
    assert resp.status_code == 403


def test_connect_telegram(client) -> None:
    user = seed_user()
    resp = client.post(
        f"/users/{user.id}/telegram",
        json={"telegram_id": "777"},
        headers=auth(token_for(user)),
    )
    assert resp.status_code == 200
    assert resp.json()["telegram_id"] == "777"


def test_admin_sets_roles_and_deletes(client, admin_token) -> None:
    user = seed_user()
    resp = client.put(
        f"/users/{user.id}/roles",
        json={"roles": ["assistant"]},
        headers=auth(admin_token),
    )
    assert resp.json()["roles"] == ["assistant"]

    url, headers = f"/users/{user.id}", auth(admin_token)
    assert client.delete(url, headers=headers).status_code == 204
    assert client.get(url, headers=headers).status_code == 404
