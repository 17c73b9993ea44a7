from __future__ import annotations

import asyncio

import pytest

from lms.services.errors import EmailAlreadyExists, UserNotFound, ValidationFailed
from lms.services.users_service import UserService

_PASSWORD = "long-enough-pw"


@pytest.fixture
def users(graph) -> UserService:
    return UserService(users=graph.user_repo)


def _create(users: UserService, email: str = "new@example.com", **kw):
    return asyncio.run(users.create_user(email=email, password=_PASSWORD, **kw))


def test_create_user_defaults_to_student(users) -> None:
    user = _create(users, name="  Grace  ")
    assert user.roles == ("student",)
    assert user.name == "Grace"
    assert user.is_active
    assert user.password_hash != _PASSWORD


def test_create_user_normalizes_email(users) -> None:
    assert _create(users, "  LOUD@Example.COM ").email == "loud@example.com"


def test_create_user_rejects_duplicate_email(users) -> None:
    _create(users, "dupe@example.com")
    with pytest.raises(EmailAlreadyExists):
        _create(users, "DUPE@example.com")


@pytest.mark.parametrize("email", ["", "   ", "no-at-sign", "a@b", "two@@x.io"])
def test_create_user_rejects_bad_email(users, email: str) -> None:
    with pytest.raises(ValidationFailed, match="invalid email"):
        _create(users, email)


def test_create_user_rejects_unknown_role(users) -> None:
    with pytest.raises(ValidationFailed, match="unknown role"):
        _create(users, roles=("student", "superuser"))


def test_create_user_requires_a_role(users) -> None:
    with pytest.raises(ValidationFailed, match="at least one role"):
        _create(users, roles=())


def test_list_users_by_role(users) -> None:
    _create(users, "t@example.com", roles=("teacher",))
    _create(users, "s@example.com")
    found = asyncio.run(users.list_users(role="teacher"))
    assert [u.email for u in found] == ["t@example.com"]
    assert len(asyncio.run(users.list_users())) == 2


def test_update_settings(users) -> None:
    user = _create(users)
    updated = asyncio.run(
        users.update_settings(user.id, {"sms": True, "language": "ru", "email": None})
    )
    assert updated.settings.sms is True
    assert updated.settings.language == "ru"
    assert updated.settings.email is True


def test_update_settings_rejects_unknown_keys(users) -> None:
    user = _create(users)
    with pytest.raises(ValidationFailed, match="unknown setting"):
        asyncio.run(users.update_settings(user.id, {"pager": True}))


def test_connect_telegram_enables_channel(users) -> None:
    user = _create(users)
    asyncio.run(users.update_settings(user.id, {"telegram": False}))
    updated = asyncio.run(users.connect_telegram(user.id, " 123456 "))
    assert updated.telegram_id == "123456"
    assert updated.settings.telegram is True


def test_set_roles_deduplicates(users) -> None:
    user = _create(users)
    updated = asyncio.run(users.set_roles(user.id, ["teacher", "teacher", "admin"]))
    assert updated.roles == ("teacher", "admin")


def test_delete_user(users) -> None:
    user = _create(users)
    asyncio.run(users.delete_user(user.id))
    with pytest.raises(UserNotFound):
        asyncio.run(users.get_user(user.id))
