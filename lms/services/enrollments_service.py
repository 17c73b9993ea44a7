"""Enrollments and the progress-tracking core.

update_student_progress() is the heart of it: one add-if-absent update
of the enrollment's completed sets, then a best-effort "progress"
notification and a live `progress-update` push.  Neither side effect
can fail or roll back the write; repeated calls are harmless because
the notification dispatcher deduplicates on a structured fingerprint.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from lms.core.clock import Clock, utcnow
from lms.models.enrollment import Enrollment
from lms.repos.base import DuplicateKeyError
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.stream_repo import StreamRepo
from lms.repos.tariff_repo import TariffRepo
from lms.repos.user_repo import UserRepo
from lms.services import templates
from lms.services.errors import (
    AlreadyEnrolled,
    CourseAlreadyCompleted,
    CourseNotFound,
    EnrollmentNotFound,
    InvalidGrade,
    LessonNotFound,
    LmsError,
    StreamNotFound,
    TariffNotFound,
    UserNotFound,
    ValidationFailed,
)
from lms.services.ids import parse_id, parse_optional_id
from lms.services.interfaces import (
    CourseSummary,
    CourseSummaryLookup,
    EventPublisher,
    Notifier,
)
from lms.services.realtime import progress_room

logger = logging.getLogger(__name__)

REMINDER_WINDOW_DAYS = 7


@dataclass(frozen=True, slots=True)
class CourseProgress:
    enrollment_id: UUID
    course_id: UUID
    course_title: str
    completed_modules: int
    total_modules: int
    completion_percentage: float
    completed_lessons: int
    total_lessons: int
    lesson_completion_percentage: float
    points: int
    is_completed: bool
    grade: float | None
    deadline: datetime | None


@dataclass(frozen=True, slots=True)
class DetailedProgress:
    student_id: UUID
    progress: list[CourseProgress]


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    student_id: UUID
    name: str
    points: int
    completion_percentage: float


def percentage(done: int, total: int) -> float:
    """done/total as a percentage rounded to 2 decimals; 0 when total is 0."""
    if total <= 0:
        return 0.0
    return round(done / total * 100, 2)


def check_grade(grade: object, *, whole: bool = False) -> None:
    """Grades are numbers in [0, 100]; `whole` also demands an int."""
    kinds = int if whole else (int, float)
    if isinstance(grade, bool) or not isinstance(grade, kinds):
        raise InvalidGrade(grade)
    # NaN fails the range check too
    if not 0 <= grade <= 100:
        raise InvalidGrade(grade)


def days_until(deadline: datetime, now: datetime) -> int:
    return math.ceil((deadline - now).total_seconds() / 86400)


class EnrollmentService:
    def __init__(
        self,
        *,
        enrollments: EnrollmentRepo,
        users: UserRepo,
        streams: StreamRepo,
        tariffs: TariffRepo,
        courses: CourseSummaryLookup,
        notifier: Notifier,
        publisher: EventPublisher | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._enrollments = enrollments
        self._users = users
        self._streams = streams
        self._tariffs = tariffs
        self._courses = courses
        self._notifier = notifier
        self._publisher = publisher
        self._clock = clock

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_enrollment(
        self,
        student_id: str | UUID,
        course_id: str | UUID,
        *,
        deadline: datetime | None = None,
        stream_id: str | UUID | None = None,
        tariff_id: str | UUID | None = None,
        skip_notifications: bool = False,
    ) -> Enrollment:
        sid = parse_id(student_id, "student_id")
        cid = parse_id(course_id, "course_id")
        stid = parse_optional_id(stream_id, "stream_id")
        tid = parse_optional_id(tariff_id, "tariff_id")

        if await self._users.get(sid) is None:
            raise UserNotFound(sid)
        summary = await self._courses.summary(cid)
        if summary is None:
            raise CourseNotFound(cid)
        if await self._enrollments.get_for(sid, cid) is not None:
            logger.warning(
                "Rejected duplicate enrollment student=%s course=%s", sid, cid
            )
            raise AlreadyEnrolled(sid, cid)

        if stid is not None:
            stream = await self._streams.get(stid)
            if stream is None:
                raise StreamNotFound(stid)
            if stream.course_id != cid:
                raise ValidationFailed(f"stream {stid} does not belong to course {cid}")
        if tid is not None:
            tariff = await self._tariffs.get(tid)
            if tariff is None:
                raise TariffNotFound(tid)
            if tariff.course_id != cid:
                raise ValidationFailed(f"tariff {tid} does not belong to course {cid}")

        enrollment = Enrollment.new(
            student_id=sid,
            course_id=cid,
            stream_id=stid,
            tariff_id=tid,
            deadline=deadline,
        )
        try:
            await self._enrollments.add(enrollment)
        except DuplicateKeyError:
            raise AlreadyEnrolled(sid, cid) from None

        if stid is not None:
            await self._streams.add_student(stid, sid)

        logger.info(
            "Enrolled student=%s in course=%s enrollment=%s", sid, cid, enrollment.id
        )

        if not skip_notifications:
            await self._notify_enrolled(enrollment, summary)
        return enrollment

    async def create_batch_enrollments(
        self,
        student_ids: Sequence[str],
        course_ids: Sequence[str],
        deadlines: Sequence[datetime | None] | None = None,
    ) -> list[Enrollment]:
        """Enroll row by row; rows that fail are logged and skipped."""
        if len(student_ids) != len(course_ids):
            raise ValidationFailed("student_ids and course_ids must have equal length")
        if deadlines is not None and len(deadlines) != len(student_ids):
            raise ValidationFailed("deadlines must match student_ids in length")

        created: list[Enrollment] = []
        for i, (sid, cid) in enumerate(zip(student_ids, course_ids, strict=True)):
            deadline = deadlines[i] if deadlines is not None else None
            try:
                created.append(
                    await self.create_enrollment(sid, cid, deadline=deadline)
                )
            except LmsError as exc:
                logger.warning("Batch enrollment row %d skipped: %s", i, exc.detail)
        logger.info(
            "Batch enrollment: %d of %d created", len(created), len(student_ids)
        )
        return created

    async def get(self, enrollment_id: str | UUID) -> Enrollment:
        eid = parse_id(enrollment_id, "enrollment_id")
        enrollment = await self._enrollments.get(eid)
        if enrollment is None:
            raise EnrollmentNotFound(eid)
        return enrollment

    async def get_for(
        self, student_id: str | UUID, course_id: str | UUID
    ) -> Enrollment:
        sid = parse_id(student_id, "student_id")
        cid = parse_id(course_id, "course_id")
        enrollment = await self._enrollments.get_for(sid, cid)
        if enrollment is None:
            raise EnrollmentNotFound()
        return enrollment

    async def list_by_student(self, student_id: str | UUID) -> list[Enrollment]:
        sid = parse_id(student_id, "student_id")
        return await self._enrollments.list_by_student(sid)

    async def list_by_course(self, course_id: str | UUID) -> list[Enrollment]:
        return await self._enrollments.list_by_course(parse_id(course_id, "course_id"))

    async def delete(self, enrollment_id: str | UUID) -> None:
        enrollment = await self.get(enrollment_id)
        await self._enrollments.delete(enrollment.id)
        logger.info("Deleted enrollment=%s", enrollment.id)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def update_student_progress(
        self,
        student_id: str | UUID,
        course_id: str | UUID,
        module_id: str | UUID,
        lesson_id: str | UUID,
    ) -> Enrollment:
        sid = parse_id(student_id, "student_id")
        cid = parse_id(course_id, "course_id")
        mid = parse_id(module_id, "module_id")
        lid = parse_id(lesson_id, "lesson_id")

        enrollment = await self._enrollments.get_for(sid, cid)
        if enrollment is None:
            raise EnrollmentNotFound()

        updated = await self._enrollments.add_progress(enrollment.id, mid, lid)
        if updated is None:
            raise EnrollmentNotFound(enrollment.id)

        logger.info(
            "Progress saved enrollment=%s module=%s lesson=%s", updated.id, mid, lid
        )
        await self._after_progress(updated, mid, lid)
        return updated

    async def update_progress(
        self,
        enrollment_id: str | UUID,
        module_id: str | UUID,
        lesson_id: str | UUID,
    ) -> Enrollment:
        enrollment = await self.get(enrollment_id)
        return await self.update_student_progress(
            enrollment.student_id, enrollment.course_id, module_id, lesson_id
        )

    async def complete_lesson(
        self, student_id: str | UUID, course_id: str | UUID, lesson_id: str | UUID
    ) -> Enrollment:
        """Mark a lesson done and award its points the first time only."""
        sid = parse_id(student_id, "student_id")
        cid = parse_id(course_id, "course_id")
        lid = parse_id(lesson_id, "lesson_id")

        located = await self._courses.locate_lesson(lid)
        if located is None:
            raise LessonNotFound(lid)
        lesson, module = located
        if module.course_id != cid:
            raise ValidationFailed(f"lesson {lid} does not belong to course {cid}")

        enrollment = await self._enrollments.get_for(sid, cid)
        if enrollment is None:
            raise EnrollmentNotFound()
        first_time = lid not in enrollment.completed_lessons

        enrollment = await self.update_student_progress(sid, cid, module.id, lid)
        if not first_time:
            return enrollment

        points = lesson.points or 1
        enrollment = await self.award_points(sid, cid, points)
        await self._safe_event(
            sid,
            templates.PROGRESS_POINTS,
            {"points": points, "lesson_title": lesson.title},
            fingerprint=f"points:{enrollment.id}:{lid}",
        )
        return enrollment

    async def award_points(
        self, student_id: str | UUID, course_id: str | UUID, points: int
    ) -> Enrollment:
        sid = parse_id(student_id, "student_id")
        cid = parse_id(course_id, "course_id")
        if points < 0:
            raise ValidationFailed("points must be >= 0")

        enrollment = await self._enrollments.get_for(sid, cid)
        if enrollment is None:
            raise EnrollmentNotFound()
        if enrollment.is_completed:
            raise CourseAlreadyCompleted(f"course {cid} is already completed")

        if enrollment.tariff_id is not None:
            tariff = await self._tariffs.get(enrollment.tariff_id)
            if tariff is not None and not tariff.includes_points:
                logger.info(
                    "Points skipped: tariff=%s excludes points (enrollment=%s)",
                    tariff.id,
                    enrollment.id,
                )
                return enrollment

        updated = await self._enrollments.add_points(enrollment.id, points)
        if updated is None:
            raise EnrollmentNotFound(enrollment.id)
        logger.info("Awarded %d point(s) enrollment=%s", points, updated.id)
        return updated

    async def complete_course(
        self, enrollment_id: str | UUID, grade: float
    ) -> Enrollment:
        """Mark the course completed with a grade.  One-way: a second call fails."""
        eid = parse_id(enrollment_id, "enrollment_id")
        check_grade(grade)

        updated = await self._enrollments.complete(eid, grade)
        if updated is None:
            if await self._enrollments.get(eid) is None:
                raise EnrollmentNotFound(eid)
            raise CourseAlreadyCompleted(f"enrollment {eid} is already completed")
        logger.info("Course completed enrollment=%s grade=%s", eid, grade)
        await self._publish_progress(updated)
        return updated

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def get_detailed_student_progress(
        self, student_id: str | UUID
    ) -> DetailedProgress:
        sid = parse_id(student_id, "student_id")
        rows = [
            self._progress_row(e, await self._courses.summary(e.course_id))
            for e in await self._enrollments.list_by_student(sid)
        ]
        return DetailedProgress(student_id=sid, progress=rows)

    async def leaderboard(
        self, course_id: str | UUID, limit: int = 10
    ) -> list[LeaderboardEntry]:
        cid = parse_id(course_id, "course_id")
        summary = await self._courses.summary(cid)
        if summary is None:
            raise CourseNotFound(cid)
        top = await self._enrollments.top_by_points(cid, limit)
        found = await self._users.get_many([e.student_id for e in top])
        users = {u.id: u for u in found}
        return [
            LeaderboardEntry(
                student_id=e.student_id,
                name=users[e.student_id].name if e.student_id in users else "",
                points=e.points,
                completion_percentage=percentage(
                    len(e.completed_modules), summary.total_modules
                ),
            )
            for e in top
        ]

    async def export_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(
            [
                "enrollment_id",
                "student_id",
                "student_email",
                "course_id",
                "course_title",
                "completed_modules",
                "completed_lessons",
                "points",
                "is_completed",
                "grade",
                "deadline",
            ]
        )
        for e in await self._enrollments.list_all():
            student = await self._users.get(e.student_id)
            summary = await self._courses.summary(e.course_id)
            writer.writerow(
                [
                    e.id,
                    e.student_id,
                    student.email if student else "",
                    e.course_id,
                    summary.title if summary else "",
                    len(e.completed_modules),
                    len(e.completed_lessons),
                    e.points,
                    e.is_completed,
                    "" if e.grade is None else e.grade,
                    e.deadline.isoformat() if e.deadline else "",
                ]
            )
        return buf.getvalue()

    # ------------------------------------------------------------------
    # Side effects (best effort)
    # ------------------------------------------------------------------

    async def _after_progress(
        self, enrollment: Enrollment, module_id: UUID, lesson_id: UUID
    ) -> None:
        try:
            module_title, lesson_title = await self._courses.titles(
                module_id, lesson_id
            )
            message = (
                f'Lesson "{lesson_title or lesson_id}" in module '
                f'"{module_title or module_id}" completed.'
            )
            await self._notifier.notify_progress(
                enrollment.student_id,
                message,
                title="Progress updated",
                fingerprint=f"progress:{enrollment.id}:{module_id}:{lesson_id}",
            )
        except Exception:
            logger.exception(
                "Progress notification failed for enrollment=%s", enrollment.id
            )
        await self._publish_progress(enrollment)

    async def _publish_progress(self, enrollment: Enrollment) -> None:
        if self._publisher is None:
            return
        try:
            summary = await self._courses.summary(enrollment.course_id)
            row = self._progress_row(enrollment, summary)
            await self._publisher.publish(
                progress_room(enrollment.student_id),
                "progress-update",
                progress_payload(row),
            )
        except Exception:
            logger.exception("Progress push failed for enrollment=%s", enrollment.id)

    async def _notify_enrolled(
        self, enrollment: Enrollment, summary: CourseSummary
    ) -> None:
        await self._safe_event(
            enrollment.student_id,
            templates.NEW_COURSE,
            {"course_title": summary.title},
            fingerprint=f"new_course:{enrollment.id}",
        )
        if enrollment.deadline is None:
            return
        days_left = days_until(enrollment.deadline, self._clock())
        if 0 < days_left <= REMINDER_WINDOW_DAYS:
            await self._safe_event(
                enrollment.student_id,
                templates.DEADLINE_REMINDER,
                {"title": summary.title, "days_left": days_left},
                fingerprint=f"deadline:{enrollment.id}:{days_left}",
            )

    async def _safe_event(
        self,
        user_id: UUID,
        key: str,
        params: dict,
        *,
        fingerprint: str,
    ) -> None:
        try:
            await self._notifier.notify_event(
                user_id, key, params, fingerprint=fingerprint
            )
        except Exception:
            logger.exception("Notification %s failed for user=%s", key, user_id)

    @staticmethod
    def _progress_row(
        enrollment: Enrollment, summary: CourseSummary | None
    ) -> CourseProgress:
        total_modules = summary.total_modules if summary else 0
        total_lessons = summary.total_lessons if summary else 0
        done_modules = len(enrollment.completed_modules)
        done_lessons = len(enrollment.completed_lessons)
        return CourseProgress(
            enrollment_id=enrollment.id,
            course_id=enrollment.course_id,
            course_title=summary.title if summary else "Unknown course",
            completed_modules=done_modules,
            total_modules=total_modules,
            completion_percentage=percentage(done_modules, total_modules),
            completed_lessons=done_lessons,
            total_lessons=total_lessons,
            lesson_completion_percentage=percentage(done_lessons, total_lessons),
            points=enrollment.points,
            is_completed=enrollment.is_completed,
            grade=enrollment.grade,
            deadline=enrollment.deadline,
        )


def progress_payload(row: CourseProgress) -> dict:
    return {
        "enrollment_id": str(row.enrollment_id),
        "course_id": str(row.course_id),
        "course_title": row.course_title,
        "completion_percentage": row.completion_percentage,
        "lesson_completion_percentage": row.lesson_completion_percentage,
        "points": row.points,
        "is_completed": row.is_completed,
        "grade": row.grade,
    }
