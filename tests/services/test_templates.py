from __future__ import annotations

import asyncio

import pytest

from lms.services.errors import TemplateNotFound
from lms.services.templates import (
    DEADLINE_REMINDER,
    DEFAULT_TEMPLATES,
    NEW_COURSE,
    render_template,
)
from tests.conftest import add_user


def test_render_substitutes_placeholders() -> None:
    text = "{{days_left}} day(s) left for {{ title }}"
    assert render_template(text, {"days_left": 3, "title": "Essay"}) == (
        "3 day(s) left for Essay"
    )


def test_render_leaves_unknown_placeholders() -> None:
    assert render_template("Hi {{name}}", {}) == "Hi {{name}}"


def test_every_event_has_a_default() -> None:
    assert {NEW_COURSE, DEADLINE_REMINDER} <= set(DEFAULT_TEMPLATES)
    for title, message in DEFAULT_TEMPLATES.values():
        assert title and "{{" in message


def test_default_template_used_without_stored_record(graph) -> None:
    store = graph.notifications._templates
    title, message = asyncio.run(store.render(NEW_COURSE, {"course_title": "SQL"}))
    assert title == "New course"
    assert message == 'You have been enrolled in "SQL".'


def test_unknown_template_key(graph) -> None:
    store = graph.notifications._templates
    with pytest.raises(TemplateNotFound):
        asyncio.run(store.get("no_such_template"))


def test_stored_template_overrides_default_and_invalidates_cache(graph) -> None:
    store = graph.notifications._templates

    async def scenario():
        # warm the cache with the default first
        await store.get(NEW_COURSE)
        await graph.notifications.upsert_template(
            key=NEW_COURSE, message="Welcome to {{course_title}}!", title="Hello"
        )
        return await store.render(NEW_COURSE, {"course_title": "Go"})

    assert asyncio.run(scenario()) == ("Hello", "Welcome to Go!")


def test_upsert_updates_existing_template(graph) -> None:
    async def scenario():
        first = await graph.notifications.upsert_template(key="promo", message="v1")
        second = await graph.notifications.upsert_template(key="promo", message="v2")
        return first, second, await graph.notifications.list_templates()

    first, second, templates = asyncio.run(scenario())
    assert first.id == second.id
    assert [t.message for t in templates] == ["v2"]


def test_notify_event_renders_template(graph) -> None:
    async def scenario():
        user = await add_user(graph)
        await graph.notifications.notify_event(
            user.id, DEADLINE_REMINDER, {"title": "Essay", "days_left": 2}
        )
        return await graph.notifications.list_for_user(user.id)

    (note,) = asyncio.run(scenario())
    assert note.title == "Deadline reminder"
    assert note.message == '2 day(s) left until the deadline for "Essay".'
