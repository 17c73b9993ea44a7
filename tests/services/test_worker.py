from __future__ import annotations

import asyncio

from lms import wiring
from lms.services.task_queue import NOTIFICATION_DELIVERY, Task, task_queue
from lms.worker import HANDLERS, drain, run_task
from tests.conftest import seed_user


def _create_for(user):
    return asyncio.run(
        wiring.notification_service.create_notification(
            user_id=user.id, message="Lesson published", title="News"
        )
    )


def test_handlers_cover_both_delivery_queues() -> None:
    assert set(HANDLERS) == {NOTIFICATION_DELIVERY, "bulk_notification_delivery"}


def test_drain_delivers_queued_notification() -> None:
    user = seed_user()
    notification = _create_for(user)

    async def scenario():
        await task_queue.enqueue(
            NOTIFICATION_DELIVERY,
            {"notification_id": str(notification.id), "user_id": str(user.id)},
        )
        processed = await drain()
        return processed, await wiring.notification_service.get(notification.id)

    processed, stored = asyncio.run(scenario())
    assert processed == 1
    assert stored.is_sent
    assert stored.sent_at is not None


def test_drain_delivers_bulk_to_stored_recipients() -> None:
    users = [seed_user(), seed_user()]

    async def scenario():
        result = await wiring.notification_service.create_bulk_notification(
            recipients=[u.id for u in users], message="Exam moved"
        )
        await task_queue.enqueue(
            "bulk_notification_delivery",
            {"notification_id": str(result.notification.id), "recipient_ids": None},
        )
        return await drain()

    assert asyncio.run(scenario()) == 1


def test_failing_task_is_dropped_and_reported() -> None:
    task = Task(
        id="t-1",
        queue=NOTIFICATION_DELIVERY,
        payload={"notification_id": "not-a-uuid", "user_id": "x"},
    )
    assert asyncio.run(run_task(task)) is False


def test_unknown_queue_is_dropped() -> None:
    task = Task(id="t-2", queue="nowhere", payload={})
    assert asyncio.run(run_task(task)) is False


def test_drain_on_empty_queues_is_a_noop() -> None:
    assert asyncio.run(drain()) == 0
