from __future__ import annotations

import asyncio

import pytest

from lms.models.quiz import Question
from lms.services.errors import CourseNotFound, EnrollmentNotFound
from lms.services.realtime import activity_room
from tests.conftest import add_course, add_user


async def _student_with_work(graph):
    student = await add_user(graph)
    course, structure = await add_course(graph)
    await graph.enrollments.create_enrollment(
        student.id, course.id, skip_notifications=True
    )
    lesson = structure[0][1][0]
    for description, grade in (("Task A", 80), ("Task B", None)):
        homework = await graph.homeworks.create_homework(
            lesson_id=lesson.id, description=description
        )
        submission = await graph.homeworks.create_submission(
            homework_id=homework.id, student_id=student.id, content="answer"
        )
        if grade is not None:
            await graph.homeworks.grade_submission(submission.id, grade)
    quiz = await graph.quizzes.create_quiz(
        lesson_id=lesson.id,
        title="Check",
        questions=(
            Question(question="a", correct_text_answer="a"),
            Question(question="b", correct_text_answer="b"),
        ),
    )
    await graph.quizzes.submit_quiz(student.id, quiz.id, ["a", "wrong"])
    return student, course


def test_student_progress_averages(graph) -> None:
    async def scenario():
        student, course = await _student_with_work(graph)
        return await graph.analytics.get_student_progress(student.id, course.id)

    progress = asyncio.run(scenario())
    # ungraded submission counts as 0
    assert progress.avg_homework_grade == 40.0
    assert progress.avg_quiz_score == 50.0
    assert progress.completed_lessons == 1
    assert progress.total_lessons == 4
    assert progress.lesson_completion_percentage == 25.0
    assert progress.points == 21


def test_student_progress_requires_enrollment(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        course, _ = await add_course(graph)
        await graph.analytics.get_student_progress(student.id, course.id)

    with pytest.raises(EnrollmentNotFound):
        asyncio.run(scenario())


def test_snapshot_lists_every_enrollment(graph) -> None:
    async def scenario():
        student = await add_user(graph)
        for _ in range(2):
            course, _ = await add_course(graph)
            await graph.enrollments.create_enrollment(student.id, course.id)
        return await graph.analytics.student_snapshot(student.id)

    assert len(asyncio.run(scenario())) == 2


def test_course_analytics_and_cache(graph) -> None:
    async def scenario():
        course, _ = await add_course(graph)
        grades = (60, 90, None)
        for grade in grades:
            student = await add_user(graph)
            enrollment = await graph.enrollments.create_enrollment(
                student.id, course.id, skip_notifications=True
            )
            if grade is not None:
                await graph.enrollments.complete_course(enrollment.id, grade)
        first = await graph.analytics.course_analytics(course.id)
        # a new completion is not visible until the cached entry expires
        late = await add_user(graph)
        enrollment = await graph.enrollments.create_enrollment(
            late.id, course.id, skip_notifications=True
        )
        await graph.enrollments.complete_course(enrollment.id, 100)
        cached = await graph.analytics.course_analytics(course.id)
        graph.clock.advance(seconds=301)
        fresh = await graph.analytics.course_analytics(course.id)
        return first, cached, fresh

    first, cached, fresh = asyncio.run(scenario())
    assert first.total_students == 3
    assert first.completed_students == 2
    assert first.completion_rate == 66.67
    assert first.average_grade == 75.0
    assert cached == first
    assert fresh.total_students == 4
    assert fresh.average_grade == 83.33


def test_course_analytics_unknown_course(graph) -> None:
    with pytest.raises(CourseNotFound):
        asyncio.run(
            graph.analytics.course_analytics("a0a0a0a0-b1b1-4c2c-8d3d-e4e4e4e4e4e4")
        )


def test_overall_analytics_empty_platform(graph) -> None:
    result = asyncio.run(graph.analytics.overall_analytics())
    assert result.total_students == 0
    assert result.completion_rate == 0.0
    assert result.average_grade == 0.0
    assert result.total_courses == 0


def test_course_activity_is_published(graph) -> None:
    async def scenario():
        student, course = await _student_with_work(graph)
        return course, await graph.analytics.course_activity(course.id)

    course, activity = asyncio.run(scenario())
    assert activity.total_enrollments == 1
    assert activity.active_homeworks == 2
    assert activity.total_submissions == 2
    room, event, data = graph.publisher.events[-1]
    assert room == activity_room(course.id)
    assert event == "activity-update"
    assert data["total_submissions"] == 2
