"""Notification message templates.

Templates are Notification records carrying a `key`; admins can create
or edit them through the API.  Keys without a stored record fall back
to DEFAULT_TEMPLATES.  Lookups are read-through cached under
`notification_template:{key}`.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping

from lms.core.metrics import CACHE_OPERATIONS
from lms.repos.notification_repo import NotificationRepo
from lms.services.cache import CacheService
from lms.services.errors import TemplateNotFound

logger = logging.getLogger(__name__)

NEW_COURSE = "new_course"
DEADLINE_REMINDER = "deadline_reminder"
PROGRESS_POINTS = "progress_points"
QUIZ_SUBMISSION = "quiz_submission"
HOMEWORK_SUBMISSION = "homework_submission"
HOMEWORK_GRADED = "homework_graded"

# key -> (title, message)
DEFAULT_TEMPLATES: dict[str, tuple[str, str]] = {
    NEW_COURSE: (
        "New course",
        'You have been enrolled in "{{course_title}}".',
    ),
    DEADLINE_REMINDER: (
        "Deadline reminder",
        '{{days_left}} day(s) left until the deadline for "{{title}}".',
    ),
    PROGRESS_POINTS: (
        "Points awarded",
        'You earned {{points}} point(s) for "{{lesson_title}}".',
    ),
    QUIZ_SUBMISSION: (
        "Quiz submitted",
        'Your answers to "{{quiz_title}}" scored {{score}}%.',
    ),
    HOMEWORK_SUBMISSION: (
        "Homework received",
        'Your homework for "{{lesson_title}}" was received. +{{points}} point(s).',
    ),
    HOMEWORK_GRADED: (
        "Homework graded",
        'Your homework for "{{lesson_title}}" was graded: {{grade}}/100.',
    ),
}

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_template(text: str, params: Mapping[str, object]) -> str:
    """Replace {{name}} placeholders; unknown names are left as-is."""
    return _PLACEHOLDER.sub(
        lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0),
        text,
    )


class TemplateStore:
    def __init__(
        self, notifications: NotificationRepo, cache: CacheService, ttl_seconds: int
    ) -> None:
        self._notifications = notifications
        self._cache = cache
        self._ttl = ttl_seconds

    async def get(self, key: str) -> tuple[str | None, str]:
        cache_key = f"notification_template:{key}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            CACHE_OPERATIONS.labels(operation="hit").inc()
            data = json.loads(cached)
            return data["title"], data["message"]

        CACHE_OPERATIONS.labels(operation="miss").inc()
        record = await self._notifications.get_template(key)
        if record is not None:
            title, message = record.title, record.message
        elif key in DEFAULT_TEMPLATES:
            title, message = DEFAULT_TEMPLATES[key]
        else:
            raise TemplateNotFound(key)

        await self._cache.set(
            cache_key, json.dumps({"title": title, "message": message}), self._ttl
        )
        return title, message

    async def render(
        self, key: str, params: Mapping[str, object]
    ) -> tuple[str | None, str]:
        title, message = await self.get(key)
        rendered_title = render_template(title, params) if title else None
        return rendered_title, render_template(message, params)

    async def invalidate(self, key: str) -> None:
        await self._cache.delete(f"notification_template:{key}")
