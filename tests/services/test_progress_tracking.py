"""Progress updates: idempotence, percentages, side effects."""

from __future__ import annotations

import asyncio

import pytest

from lms.services.enrollments_service import percentage
from lms.services.errors import EnrollmentNotFound, InvalidIdentifier
from lms.services.realtime import progress_room
from tests.conftest import add_course, add_user


def test_percentage_of_empty_course_is_zero() -> None:
    assert percentage(0, 0) == 0.0
    assert percentage(3, 0) == 0.0


def test_percentage_rounds_to_two_decimals() -> None:
    assert percentage(1, 3) == 33.33
    assert percentage(2, 3) == 66.67
    assert percentage(4, 4) == 100.0


def test_first_lesson_of_two_module_course(graph) -> None:
    """2 modules x 2 lessons: one lesson done is 50% modules, 25% lessons."""

    async def scenario():
        student = await add_user(graph)
        course, structure = await add_course(graph)
        await graph.enrollments.create_enrollment(student.id, course.id)
        module, lessons = structure[0]
        await graph.enrollments.update_student_progress(
            student.id, course.id, module.id, lessons[0].id
        )
        return await graph.enrollments.get_detailed_student_progress(student.id)

    detailed = asyncio.run(scenario())
    (row,) = detailed.progress
    assert row.completed_modules == 1
    assert row.total_modules == 2
    assert row.completion_percentage == 50.0
    assert row.completed_lessons == 1
    assert row.total_lessons == 4
    assert row.lesson_completion_percentage == 25.0


def test_repeated_update_is_idempotent(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, structure = await add_course(graph)
        await graph.enrollments.create_enrollment(
            student.id, course.id, skip_notifications=True
        )
        module, lessons = structure[0]
        first = await graph.enrollments.update_student_progress(
            student.id, course.id, module.id, lessons[0].id
        )
        second = await graph.enrollments.update_student_progress(
            student.id, course.id, module.id, lessons[0].id
        )
        progress_notes = [
            n
            for n in await graph.notifications.list_for_user(student.id)
            if n.title == "Progress updated"
        ]
        return first, second, progress_notes

    first, second, progress_notes = asyncio.run(scenario())
    assert first.completed_modules == second.completed_modules
    assert first.completed_lessons == second.completed_lessons
    assert len(second.completed_lessons) == 1
    # the second identical update hits the dedup key
    assert len(progress_notes) == 1


def test_zero_module_course_reports_zero_percent(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph, modules=0)
        await graph.enrollments.create_enrollment(student.id, course.id)
        return await graph.enrollments.get_detailed_student_progress(student.id)

    (row,) = asyncio.run(scenario()).progress
    assert row.total_modules == 0
    assert row.completion_percentage == 0.0
    assert row.lesson_completion_percentage == 0.0


def test_update_without_enrollment_fails(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, structure = await add_course(graph)
        module, lessons = structure[0]
        await graph.enrollments.update_student_progress(
            student.id, course.id, module.id, lessons[0].id
        )

    with pytest.raises(EnrollmentNotFound):
        asyncio.run(scenario())


def test_malformed_ids_rejected_before_any_lookup(graph) -> None:
    with pytest.raises(InvalidIdentifier, match="student_id"):
        asyncio.run(
            graph.enrollments.update_student_progress(
                "not-a-uuid", "also-bad", "x", "y"
            )
        )


def test_progress_update_is_published(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, structure = await add_course(graph)
        await graph.enrollments.create_enrollment(student.id, course.id)
        module, lessons = structure[1]
        await graph.enrollments.update_student_progress(
            student.id, course.id, module.id, lessons[1].id
        )
        return student

    student = asyncio.run(scenario())
    room, event, data = graph.publisher.events[-1]
    assert room == progress_room(student.id)
    assert event == "progress-update"
    assert data["completion_percentage"] == 50.0
    assert data["lesson_completion_percentage"] == 25.0


def test_notification_failure_does_not_undo_progress(graph) -> None:
    async def explode(*args, **kwargs):
        raise RuntimeError("notifier down")

    graph.notifications.notify_progress = explode

    async def scenario():
        student = await add_user(graph)
        course, structure = await add_course(graph)
        await graph.enrollments.create_enrollment(student.id, course.id)
        module, lessons = structure[0]
        return await graph.enrollments.update_student_progress(
            student.id, course.id, module.id, lessons[0].id
        )

    enrollment = asyncio.run(scenario())
    assert len(enrollment.completed_lessons) == 1


def test_complete_lesson_awards_points_once(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, structure = await add_course(graph)
        await graph.enrollments.create_enrollment(student.id, course.id)
        _, lessons = structure[0]
        await graph.enrollments.complete_lesson(student.id, course.id, lessons[0].id)
        return await graph.enrollments.complete_lesson(
            student.id, course.id, lessons[0].id
        )

    enrollment = asyncio.run(scenario())
    assert enrollment.points == 1
    assert len(enrollment.completed_lessons) == 1


def test_leaderboard_orders_by_points(graph) -> None:
    async def scenario():
        course, structure = await add_course(graph)
        _, lessons = structure[0]
        alice = await add_user(graph, name="Alice")
        bob = await add_user(graph, name="Bob")
        for student in (alice, bob):
            await graph.enrollments.create_enrollment(student.id, course.id)
        await graph.enrollments.complete_lesson(bob.id, course.id, lessons[0].id)
        await graph.enrollments.complete_lesson(bob.id, course.id, lessons[1].id)
        await graph.enrollments.complete_lesson(alice.id, course.id, lessons[0].id)
        return await graph.enrollments.leaderboard(course.id, limit=5)

    board = asyncio.run(scenario())
    assert [e.name for e in board] == ["Bob", "Alice"]
    assert [e.points for e in board] == [2, 1]
