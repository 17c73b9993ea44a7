from __future__ import annotations

import asyncio
import csv
import io
from datetime import timedelta
from uuid import uuid4

import pytest

from lms.models.stream import Stream
from lms.models.tariff import Tariff
from lms.services.errors import (
    AlreadyEnrolled,
    CourseAlreadyCompleted,
    CourseNotFound,
    EnrollmentNotFound,
    InvalidGrade,
    UserNotFound,
    ValidationFailed,
)
from tests.conftest import add_course, add_user

# ---- creation ----


def test_duplicate_enrollment_conflicts(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        await graph.enrollments.create_enrollment(student.id, course.id)
        await graph.enrollments.create_enrollment(student.id, course.id)

    with pytest.raises(AlreadyEnrolled):
        asyncio.run(scenario())


def test_enrollment_requires_existing_student_and_course(graph) -> None:
    async def unknown_student():
        course, _ = await add_course(graph)
        await graph.enrollments.create_enrollment(
            "6f1e8f6e-2f57-4d8e-9b61-2f0a8c4d1e01", course.id
        )

    async def unknown_course():
        student = await add_user(graph)
        await graph.enrollments.create_enrollment(
            student.id, "6f1e8f6e-2f57-4d8e-9b61-2f0a8c4d1e02"
        )

    with pytest.raises(UserNotFound):
        asyncio.run(unknown_student())
    with pytest.raises(CourseNotFound):
        asyncio.run(unknown_course())


def test_enrollment_sends_new_course_notification(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        await graph.enrollments.create_enrollment(student.id, course.id)
        return student, await graph.notifications.list_for_user(student.id)

    student, notes = asyncio.run(scenario())
    assert [n.title for n in notes] == ["New course"]
    assert notes[0].message == 'You have been enrolled in "Algorithms".'
    assert graph.channel.sent[0][0] == str(student.id)


def test_skip_notifications_sends_nothing(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        await graph.enrollments.create_enrollment(
            student.id, course.id, skip_notifications=True
        )
        return await graph.notifications.list_for_user(student.id)

    assert asyncio.run(scenario()) == []
    assert graph.channel.sent == []


def test_near_deadline_triggers_reminder(graph, clock) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        await graph.enrollments.create_enrollment(
            student.id, course.id, deadline=clock() + timedelta(days=3)
        )
        return await graph.notifications.list_for_user(student.id)

    titles = sorted(n.title for n in asyncio.run(scenario()))
    assert titles == ["Deadline reminder", "New course"]


def test_distant_deadline_has_no_reminder(graph, clock) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        await graph.enrollments.create_enrollment(
            student.id, course.id, deadline=clock() + timedelta(days=30)
        )
        return await graph.notifications.list_for_user(student.id)

    assert [n.title for n in asyncio.run(scenario())] == ["New course"]


def test_stream_must_belong_to_course(graph, clock) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        other, _ = await add_course(graph)
        stream = Stream.new(
            course_id=other.id,
            name="Spring",
            start_date=clock(),
            end_date=clock() + timedelta(days=60),
        )
        await graph.streams.add(stream)
        await graph.enrollments.create_enrollment(
            student.id, course.id, stream_id=stream.id
        )

    with pytest.raises(ValidationFailed, match="does not belong"):
        asyncio.run(scenario())


def test_enrollment_joins_stream(graph, clock) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        stream = Stream.new(
            course_id=course.id,
            name="Autumn",
            start_date=clock(),
            end_date=clock() + timedelta(days=60),
        )
        await graph.streams.add(stream)
        await graph.enrollments.create_enrollment(
            student.id, course.id, stream_id=stream.id
        )
        return student, await graph.streams.get(stream.id)

    student, stream = asyncio.run(scenario())
    assert student.id in stream.students


def test_batch_skips_failing_rows(graph) -> None:
    async def scenario():
        a = await add_user(graph)
        b = await add_user(graph)
        course, _ = await add_course(graph)
        await graph.enrollments.create_enrollment(a.id, course.id)
        return await graph.enrollments.create_batch_enrollments(
            [str(a.id), str(b.id), "garbage"], [str(course.id)] * 3
        ), b

    created, b = asyncio.run(scenario())
    assert [e.student_id for e in created] == [b.id]


def test_batch_rejects_mismatched_lengths(graph) -> None:
    with pytest.raises(ValidationFailed, match="equal length"):
        asyncio.run(graph.enrollments.create_batch_enrollments(["a", "b"], ["c"]))


# ---- completion and grades ----


@pytest.mark.parametrize("grade", [0, 55, 85.5, 100, 100.0])
def test_valid_grades_complete_course(graph, grade: float) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        enrollment = await graph.enrollments.create_enrollment(student.id, course.id)
        return await graph.enrollments.complete_course(enrollment.id, grade)

    enrollment = asyncio.run(scenario())
    assert enrollment.is_completed
    assert enrollment.grade == grade


@pytest.mark.parametrize("grade", [-1, 101, 100.5, True, "90", float("nan")])
def test_invalid_grades_rejected(graph, grade) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        enrollment = await graph.enrollments.create_enrollment(student.id, course.id)
        await graph.enrollments.complete_course(enrollment.id, grade)

    with pytest.raises(InvalidGrade):
        asyncio.run(scenario())


def test_completed_course_awards_no_points(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        enrollment = await graph.enrollments.create_enrollment(student.id, course.id)
        await graph.enrollments.complete_course(enrollment.id, 80)
        await graph.enrollments.award_points(student.id, course.id, 5)

    with pytest.raises(CourseAlreadyCompleted):
        asyncio.run(scenario())


def test_second_completion_keeps_first_grade(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        enrollment = await graph.enrollments.create_enrollment(student.id, course.id)
        await graph.enrollments.complete_course(enrollment.id, 90)
        with pytest.raises(CourseAlreadyCompleted):
            await graph.enrollments.complete_course(enrollment.id, 10)
        return await graph.enrollments.get(enrollment.id)

    assert asyncio.run(scenario()).grade == 90


def test_completing_missing_enrollment_is_not_found(graph) -> None:
    with pytest.raises(EnrollmentNotFound):
        asyncio.run(graph.enrollments.complete_course(uuid4(), 90))


def test_tariff_without_points_skips_award(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        tariff = Tariff.new(course_id=course.id, name="Basic", price=0.0)
        await graph.tariffs.add(tariff)
        await graph.enrollments.create_enrollment(
            student.id, course.id, tariff_id=tariff.id
        )
        return await graph.enrollments.award_points(student.id, course.id, 5)

    assert asyncio.run(scenario()).points == 0


# ---- reporting ----


def test_export_csv(graph) -> None:
    async def scenario():
        student = await add_user(graph, email="csv@example.com")
        course, _ = await add_course(graph)
        enrollment = await graph.enrollments.create_enrollment(student.id, course.id)
        await graph.enrollments.complete_course(enrollment.id, 90)
        return await graph.enrollments.export_csv()

    rows = list(csv.DictReader(io.StringIO(asyncio.run(scenario()))))
    assert len(rows) == 1
    assert rows[0]["student_email"] == "csv@example.com"
    assert rows[0]["course_title"] == "Algorithms"
    assert rows[0]["is_completed"] == "True"
    assert rows[0]["grade"] == "90"
