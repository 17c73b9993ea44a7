"""Reporting over enrollments, homeworks and quizzes.

Course and platform aggregates are read-through cached for five
minutes; per-student snapshots and course activity are computed live.
course_activity() also pushes the result to the course's
`activity-update` WebSocket room.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from statistics import fmean
from uuid import UUID

from lms.core.metrics import CACHE_OPERATIONS
from lms.models.enrollment import Enrollment
from lms.models.homework import Submission
from lms.repos.enrollment_repo import EnrollmentRepo
from lms.repos.homework_repo import HomeworkRepo, SubmissionRepo
from lms.repos.quiz_repo import QuizRepo, QuizSubmissionRepo
from lms.services.cache import CacheService
from lms.services.courses_service import CourseService
from lms.services.enrollments_service import percentage
from lms.services.errors import EnrollmentNotFound
from lms.services.ids import parse_id
from lms.services.interfaces import EventPublisher
from lms.services.realtime import activity_room

logger = logging.getLogger(__name__)

_ANALYTICS_CACHE_TTL = 300
RECENT_SUBMISSIONS = 5


@dataclass(frozen=True, slots=True)
class StudentProgress:
    student_id: UUID
    course_id: UUID
    course_title: str
    completed_modules: int
    total_modules: int
    completion_percentage: float
    completed_lessons: int
    total_lessons: int
    lesson_completion_percentage: float
    points: int
    avg_homework_grade: float
    avg_quiz_score: float
    is_completed: bool
    grade: float | None


@dataclass(frozen=True, slots=True)
class CourseActivity:
    course_id: UUID
    course_title: str
    total_enrollments: int
    completed_enrollments: int
    active_homeworks: int
    total_submissions: int
    recent_submissions: list[Submission]


@dataclass(frozen=True, slots=True)
class CourseAnalytics:
    course_id: str
    course_title: str
    total_students: int
    completed_students: int
    completion_rate: float
    average_grade: float


@dataclass(frozen=True, slots=True)
class OverallAnalytics:
    total_students: int
    completed_students: int
    completion_rate: float
    average_grade: float
    total_courses: int


def _mean(values: list[float]) -> float:
    return round(fmean(values), 2) if values else 0.0


def _grade_stats(enrollments: list[Enrollment]) -> tuple[int, int, float, float]:
    total = len(enrollments)
    completed = sum(1 for e in enrollments if e.is_completed)
    grades = [e.grade for e in enrollments if e.grade is not None]
    return total, completed, percentage(completed, total), _mean(grades)


class AnalyticsService:
    def __init__(
        self,
        *,
        enrollments: EnrollmentRepo,
        courses: CourseService,
        homeworks: HomeworkRepo,
        submissions: SubmissionRepo,
        quizzes: QuizRepo,
        quiz_submissions: QuizSubmissionRepo,
        cache: CacheService,
        publisher: EventPublisher | None = None,
    ) -> None:
        self._enrollments = enrollments
        self._courses = courses
        self._homeworks = homeworks
        self._submissions = submissions
        self._quizzes = quizzes
        self._quiz_submissions = quiz_submissions
        self._cache = cache
        self._publisher = publisher

    async def get_student_progress(
        self, student_id: str | UUID, course_id: str | UUID
    ) -> StudentProgress:
        """Completion, points and average homework/quiz results in one course.

        Ungraded homework submissions count as 0 in the average.
        """
        sid = parse_id(student_id, "student_id")
        cid = parse_id(course_id, "course_id")
        enrollment = await self._enrollments.get_for(sid, cid)
        if enrollment is None:
            raise EnrollmentNotFound()
        return await self._progress(enrollment)

    async def student_snapshot(self, student_id: str | UUID) -> list[StudentProgress]:
        sid = parse_id(student_id, "student_id")
        return [
            await self._progress(e)
            for e in await self._enrollments.list_by_student(sid)
        ]

    async def course_activity(self, course_id: str | UUID) -> CourseActivity:
        course = await self._courses.get_course(course_id)
        enrollments = await self._enrollments.list_by_course(course.id)
        lessons = await self._courses.lessons_for_course(course.id)
        homeworks = await self._homeworks.list_by_lessons([lsn.id for lsn in lessons])
        hw_ids = [h.id for h in homeworks]
        submissions = await self._submissions.list_by_homeworks(hw_ids)

        activity = CourseActivity(
            course_id=course.id,
            course_title=course.title,
            total_enrollments=len(enrollments),
            completed_enrollments=sum(1 for e in enrollments if e.is_completed),
            active_homeworks=sum(1 for h in homeworks if h.is_active),
            total_submissions=len(submissions),
            recent_submissions=submissions[:RECENT_SUBMISSIONS],
        )
        if self._publisher is not None:
            try:
                await self._publisher.publish(
                    activity_room(course.id),
                    "activity-update",
                    activity_payload(activity),
                )
            except Exception:
                logger.exception("Activity push failed for course=%s", course.id)
        return activity

    async def course_analytics(self, course_id: str | UUID) -> CourseAnalytics:
        cid = parse_id(course_id, "course_id")
        cache_key = f"course_analytics:{cid}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            CACHE_OPERATIONS.labels(operation="hit").inc()
            return CourseAnalytics(**json.loads(cached))
        CACHE_OPERATIONS.labels(operation="miss").inc()

        course = await self._courses.get_course(cid)
        total, completed, rate, avg = _grade_stats(
            await self._enrollments.list_by_course(cid)
        )
        result = CourseAnalytics(
            course_id=str(cid),
            course_title=course.title,
            total_students=total,
            completed_students=completed,
            completion_rate=rate,
            average_grade=avg,
        )
        await self._cache.set(
            cache_key, json.dumps(asdict(result)), _ANALYTICS_CACHE_TTL
        )
        return result

    async def overall_analytics(self) -> OverallAnalytics:
        cache_key = "overall_analytics"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            CACHE_OPERATIONS.labels(operation="hit").inc()
            return OverallAnalytics(**json.loads(cached))
        CACHE_OPERATIONS.labels(operation="miss").inc()

        total, completed, rate, avg = _grade_stats(await self._enrollments.list_all())
        result = OverallAnalytics(
            total_students=total,
            completed_students=completed,
            completion_rate=rate,
            average_grade=avg,
            total_courses=await self._courses.count_courses(),
        )
        await self._cache.set(
            cache_key, json.dumps(asdict(result)), _ANALYTICS_CACHE_TTL
        )
        return result

    async def _progress(self, enrollment: Enrollment) -> StudentProgress:
        summary = await self._courses.summary(enrollment.course_id)
        lessons = await self._courses.lessons_for_course(enrollment.course_id)
        lesson_ids = [lsn.id for lsn in lessons]

        homework_ids = {h.id for h in await self._homeworks.list_by_lessons(lesson_ids)}
        grades = [
            float(s.grade or 0)
            for s in await self._submissions.list_by_student(enrollment.student_id)
            if s.homework_id in homework_ids
        ]
        quiz_ids = {q.id for q in await self._quizzes.list_by_lessons(lesson_ids)}
        scores = [
            s.score
            for s in await self._quiz_submissions.list_by_student(enrollment.student_id)
            if s.quiz_id in quiz_ids
        ]

        total_modules = summary.total_modules if summary else 0
        total_lessons = summary.total_lessons if summary else 0
        return StudentProgress(
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            course_title=summary.title if summary else "Unknown course",
            completed_modules=len(enrollment.completed_modules),
            total_modules=total_modules,
            completion_percentage=percentage(
                len(enrollment.completed_modules), total_modules
            ),
            completed_lessons=len(enrollment.completed_lessons),
            total_lessons=total_lessons,
            lesson_completion_percentage=percentage(
                len(enrollment.completed_lessons), total_lessons
            ),
            points=enrollment.points,
            avg_homework_grade=_mean(grades),
            avg_quiz_score=_mean(scores),
            is_completed=enrollment.is_completed,
            grade=enrollment.grade,
        )


def activity_payload(activity: CourseActivity) -> dict:
    return {
        "course_id": str(activity.course_id),
        "course_title": activity.course_title,
        "total_enrollments": activity.total_enrollments,
        "completed_enrollments": activity.completed_enrollments,
        "active_homeworks": activity.active_homeworks,
        "total_submissions": activity.total_submissions,
        "recent_submissions": [
            {
                "id": str(s.id),
                "homework_id": str(s.homework_id),
                "student_id": str(s.student_id),
                "grade": s.grade,
                "is_reviewed": s.is_reviewed,
            }
            for s in activity.recent_submissions
        ],
    }
