"""Homework assignments and student submissions."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from lms.models.homework import CATEGORIES, Homework, Submission
from lms.repos.base import DuplicateKeyError
from lms.repos.homework_repo import HomeworkRepo, SubmissionRepo
from lms.services import templates
from lms.services.enrollments_service import EnrollmentService, check_grade
from lms.services.errors import (
    AlreadySubmitted,
    CourseAlreadyCompleted,
    HomeworkNotFound,
    LessonNotFound,
    SubmissionNotFound,
    ValidationFailed,
)
from lms.services.ids import parse_id
from lms.services.interfaces import CourseSummaryLookup, Notifier

logger = logging.getLogger(__name__)


class HomeworkService:
    def __init__(
        self,
        *,
        homeworks: HomeworkRepo,
        submissions: SubmissionRepo,
        courses: CourseSummaryLookup,
        enrollments: EnrollmentService,
        notifier: Notifier,
    ) -> None:
        self._homeworks = homeworks
        self._submissions = submissions
        self._courses = courses
        self._enrollments = enrollments
        self._notifier = notifier

    # --- homeworks ---

    async def create_homework(
        self,
        *,
        lesson_id: str | UUID,
        description: str,
        category: str = "theory",
        deadline: datetime | None = None,
        points: int = 10,
    ) -> Homework:
        lid = parse_id(lesson_id, "lesson_id")
        if await self._courses.locate_lesson(lid) is None:
            raise LessonNotFound(lid)
        _check_fields(description=description, category=category, points=points)

        homework = Homework.new(
            lesson_id=lid,
            description=description.strip(),
            category=category,
            deadline=deadline,
            points=points,
        )
        await self._homeworks.add(homework)
        logger.info("Created homework id=%s lesson=%s", homework.id, lid)
        return homework

    async def get_homework(self, homework_id: str | UUID) -> Homework:
        hid = parse_id(homework_id, "homework_id")
        homework = await self._homeworks.get(hid)
        if homework is None:
            raise HomeworkNotFound(hid)
        return homework

    async def list_homeworks(
        self, lesson_id: str | UUID | None = None
    ) -> list[Homework]:
        if lesson_id is None:
            return await self._homeworks.list_all()
        return await self._homeworks.list_by_lessons([parse_id(lesson_id, "lesson_id")])

    async def update_homework(
        self,
        homework_id: str | UUID,
        *,
        description: str | None = None,
        category: str | None = None,
        deadline: datetime | None = None,
        is_active: bool | None = None,
        points: int | None = None,
    ) -> Homework:
        homework = await self.get_homework(homework_id)
        updated = replace(
            homework,
            description=(
                description.strip() if description is not None else homework.description
            ),
            category=category if category is not None else homework.category,
            deadline=deadline if deadline is not None else homework.deadline,
            is_active=is_active if is_active is not None else homework.is_active,
            points=points if points is not None else homework.points,
        )
        _check_fields(
            description=updated.description,
            category=updated.category,
            points=updated.points,
        )
        return await self._homeworks.save(updated)

    async def delete_homework(self, homework_id: str | UUID) -> None:
        homework = await self.get_homework(homework_id)
        await self._homeworks.delete(homework.id)
        logger.info("Deleted homework id=%s", homework.id)

    # --- submissions ---

    async def create_submission(
        self, *, homework_id: str | UUID, student_id: str | UUID, content: str
    ) -> Submission:
        """Store a student's answer, award the homework's points, notify.

        One submission per homework and student.  The student must be
        enrolled in the course that owns the homework's lesson.
        """
        homework = await self.get_homework(homework_id)
        sid = parse_id(student_id, "student_id")
        if not homework.is_active:
            raise ValidationFailed(f"homework {homework.id} is closed")
        if not content.strip():
            raise ValidationFailed("content must not be empty")

        located = await self._courses.locate_lesson(homework.lesson_id)
        if located is None:
            raise LessonNotFound(homework.lesson_id)
        lesson, module = located

        await self._enrollments.get_for(sid, module.course_id)

        submission = Submission.new(
            homework_id=homework.id, student_id=sid, content=content
        )
        try:
            await self._submissions.add(submission)
        except DuplicateKeyError:
            raise AlreadySubmitted(
                f"homework {homework.id} already submitted by {sid}"
            ) from None
        logger.info(
            "Submission %s for homework=%s student=%s", submission.id, homework.id, sid
        )

        points = homework.points or 10
        try:
            await self._enrollments.award_points(sid, module.course_id, points)
        except CourseAlreadyCompleted:
            logger.info("No points for submission %s: course completed", submission.id)
            points = 0

        try:
            await self._notifier.notify_event(
                sid,
                templates.HOMEWORK_SUBMISSION,
                {"lesson_title": lesson.title, "points": points},
                fingerprint=f"homework_submission:{submission.id}",
            )
        except Exception:
            logger.exception("Submission notification failed for %s", submission.id)
        return submission

    async def grade_submission(
        self, submission_id: str | UUID, grade: int, comment: str | None = None
    ) -> Submission:
        sub_id = parse_id(submission_id, "submission_id")
        check_grade(grade, whole=True)
        submission = await self._submissions.get(sub_id)
        if submission is None:
            raise SubmissionNotFound(sub_id)

        graded = await self._submissions.save(
            replace(submission, grade=grade, teacher_comment=comment, is_reviewed=True)
        )
        logger.info("Graded submission %s: %d", sub_id, grade)

        homework = await self._homeworks.get(submission.homework_id)
        located = None
        if homework is not None:
            located = await self._courses.locate_lesson(homework.lesson_id)
        lesson_title = located[0].title if located else ""
        try:
            await self._notifier.notify_event(
                submission.student_id,
                templates.HOMEWORK_GRADED,
                {"lesson_title": lesson_title, "grade": grade},
                fingerprint=f"homework_graded:{sub_id}:{grade}",
            )
        except Exception:
            logger.exception("Grade notification failed for %s", sub_id)
        return graded

    async def get_submission(self, submission_id: str | UUID) -> Submission:
        sub_id = parse_id(submission_id, "submission_id")
        submission = await self._submissions.get(sub_id)
        if submission is None:
            raise SubmissionNotFound(sub_id)
        return submission

    async def list_submissions_by_homework(
        self, homework_id: str | UUID
    ) -> list[Submission]:
        homework = await self.get_homework(homework_id)
        return await self._submissions.list_by_homework(homework.id)

    async def list_submissions_by_student(
        self, student_id: str | UUID
    ) -> list[Submission]:
        sid = parse_id(student_id, "student_id")
        return await self._submissions.list_by_student(sid)


def _check_fields(*, description: str, category: str, points: int) -> None:
    if not description.strip():
        raise ValidationFailed("description must not be empty")
    if category not in CATEGORIES:
        raise ValidationFailed(f"category must be one of {', '.join(CATEGORIES)}")
    if points < 0:
        raise ValidationFailed("points must be >= 0")
