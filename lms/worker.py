"""Background worker process: `python -m lms.worker`.

Pops tasks from the notification queues and runs the handler registered
for each queue.  Same image as the API, different command:

  api:    uvicorn lms.main:app --host 0.0.0.0 --port 8000
  worker: python -m lms.worker

A failing task is logged and dropped; the notification record stays
is_sent=False and can be re-sent through the API.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from lms.core.config import SETTINGS
from lms.core.logging import setup_logging
from lms.services.task_queue import (
    BULK_NOTIFICATION_DELIVERY,
    NOTIFICATION_DELIVERY,
    Task,
    TaskQueue,
    task_queue,
)
from lms.wiring import notification_service

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("lms.worker")

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(NOTIFICATION_DELIVERY)
async def handle_notification_delivery(payload: dict) -> None:
    notification = await notification_service.send_notification_to_user(
        payload["notification_id"], payload["user_id"]
    )
    logger.info(
        "Notification %s delivered to user=%s sent=%s",
        notification.id,
        payload["user_id"],
        notification.is_sent,
    )


@register_handler(BULK_NOTIFICATION_DELIVERY)
async def handle_bulk_notification_delivery(payload: dict) -> None:
    result = await notification_service.send_notification_to_bulk(
        payload["notification_id"], payload.get("recipient_ids")
    )
    logger.info(
        "Bulk notification %s: delivered=%d failed=%d",
        result.notification.id,
        len(result.delivered),
        len(result.failed),
    )


async def run_task(task: Task) -> bool:
    """Dispatch one task.  Returns False when its handler raised."""
    handler = HANDLERS.get(task.queue)
    if handler is None:
        logger.error("No handler for queue [%s], task %s dropped", task.queue, task.id)
        return False
    try:
        await handler(task.payload)
    except Exception:
        logger.exception("Task %s on [%s] failed", task.id, task.queue)
        return False
    logger.info("Task %s on [%s] completed", task.id, task.queue)
    return True


async def drain(queue: TaskQueue = task_queue) -> int:
    """Run every task currently queued; returns how many were processed."""
    processed = 0
    for queue_name in HANDLERS:
        while (task := await queue.dequeue(queue_name, timeout=1)) is not None:
            await run_task(task)
            processed += 1
    return processed


async def run_worker(queue: TaskQueue = task_queue) -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS)
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        idle = True
        for queue_name in queues:
            task = await queue.dequeue(queue_name, timeout=1)
            if task is None:
                continue
            idle = False
            await run_task(task)
        if idle:
            # the in-memory queue returns at once instead of blocking
            await asyncio.sleep(0.5)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
