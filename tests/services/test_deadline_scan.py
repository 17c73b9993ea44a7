"""Deadline reminder scan."""

from __future__ import annotations

import asyncio
from datetime import timedelta

from lms.services.scheduler import DEADLINE_JOB_ID, DeadlineScanner, DeadlineScheduler
from tests.conftest import add_course, add_user


async def _course_with_students(graph, count: int = 2):
    course, structure = await add_course(graph)
    students = []
    for _ in range(count):
        student = await add_user(graph)
        await graph.enrollments.create_enrollment(
            student.id, course.id, skip_notifications=True
        )
        students.append(student)
    return course, structure[0][1][0], students


def test_reminds_every_enrolled_student(graph, clock) -> None:
    async def scenario():
        _, lesson, students = await _course_with_students(graph)
        await graph.homeworks.create_homework(
            lesson_id=lesson.id,
            description="Essay",
            deadline=clock() + timedelta(days=2),
        )
        summary = await graph.scanner.check_deadlines()
        notes = [await graph.notifications.list_for_user(s.id) for s in students]
        return summary, notes

    summary, notes = asyncio.run(scenario())
    assert summary.homeworks_checked == 1
    assert summary.reminders_requested == 2
    assert summary.failures == 0
    for per_student in notes:
        (note,) = per_student
        assert note.message == (
            '2 day(s) left until the deadline for "Algorithms: Essay".'
        )


def test_deadlines_outside_window_are_ignored(graph, clock) -> None:
    async def scenario():
        _, lesson, _ = await _course_with_students(graph)
        for days in (0, 8, -3):
            await graph.homeworks.create_homework(
                lesson_id=lesson.id,
                description=f"due in {days}",
                deadline=clock() + timedelta(days=days),
            )
        return await graph.scanner.check_deadlines()

    summary = asyncio.run(scenario())
    assert summary.homeworks_checked == 3
    assert summary.reminders_requested == 0


def test_repeated_scan_same_day_is_deduplicated(graph, clock) -> None:
    async def scenario():
        _, lesson, students = await _course_with_students(graph, count=1)
        await graph.homeworks.create_homework(
            lesson_id=lesson.id,
            description="Lab",
            deadline=clock() + timedelta(days=5),
        )
        await graph.scanner.check_deadlines()
        clock.advance(minutes=30)
        await graph.scanner.check_deadlines()
        return await graph.notifications.list_for_user(students[0].id)

    assert len(asyncio.run(scenario())) == 1


class _FlakyNotifier:
    """Fails the first reminder, passes the rest through."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.calls: list = []

    async def notify_event(self, user_id, key, params, **kwargs) -> None:
        self.calls.append(user_id)
        if len(self.calls) == 1:
            raise RuntimeError("cache unavailable")
        await self.inner.notify_event(user_id, key, params, **kwargs)


def test_one_failing_student_does_not_stop_the_scan(graph, clock) -> None:
    notifier = _FlakyNotifier(graph.notifications)
    scanner = DeadlineScanner(
        homeworks=graph.homework_repo,
        enrollments=graph.enrollment_repo,
        courses=graph.courses,
        notifier=notifier,
        clock=clock,
    )

    async def scenario():
        _, lesson, students = await _course_with_students(graph, count=3)
        await graph.homeworks.create_homework(
            lesson_id=lesson.id,
            description="Quiz prep",
            deadline=clock() + timedelta(days=1),
        )
        return await scanner.check_deadlines()

    summary = asyncio.run(scenario())
    assert summary.failures == 1
    assert summary.reminders_requested == 2
    assert len(notifier.calls) == 3


def test_inactive_homework_is_skipped(graph, clock) -> None:
    async def scenario():
        _, lesson, _ = await _course_with_students(graph)
        homework = await graph.homeworks.create_homework(
            lesson_id=lesson.id,
            description="Retired",
            deadline=clock() + timedelta(days=2),
        )
        await graph.homeworks.update_homework(homework.id, is_active=False)
        return await graph.scanner.check_deadlines()

    summary = asyncio.run(scenario())
    assert summary.homeworks_checked == 0


# ---- interval scheduling ----


def test_scheduler_lifespan_starts_and_stops(graph) -> None:
    scheduler = DeadlineScheduler(graph.scanner, interval_hours=24)

    async def scenario():
        async with scheduler.lifespan(enabled=True):
            job = scheduler._scheduler.get_job(DEADLINE_JOB_ID)
            return scheduler.running, job.trigger.interval

    running, interval = asyncio.run(scenario())
    assert running
    assert interval == timedelta(hours=24)
    assert not scheduler.running


def test_disabled_scheduler_never_starts(graph) -> None:
    scheduler = DeadlineScheduler(graph.scanner, interval_hours=24)

    async def scenario():
        async with scheduler.lifespan(enabled=False):
            return scheduler.running

    assert asyncio.run(scenario()) is False
    assert not scheduler.running


def test_scheduler_can_restart_after_shutdown(graph) -> None:
    scheduler = DeadlineScheduler(graph.scanner, interval_hours=1)

    async def scenario():
        for _ in range(2):
            async with scheduler.lifespan(enabled=True):
                assert scheduler.running
            assert not scheduler.running

    asyncio.run(scenario())


def test_scheduled_run_logs_scanner_failure(caplog) -> None:
    class _Broken:
        async def check_deadlines(self):
            raise RuntimeError("db gone")

    scheduler = DeadlineScheduler(_Broken(), interval_hours=1)
    asyncio.run(scheduler.run_deadline_scan())

    assert "Deadline scan aborted" in caplog.text
