"""Module-level singletons: repositories, channels, services.

PostgreSQL repositories when DATABASE_URL is configured, in-memory ones
otherwise (tests, local development).  API modules and the worker import
the services from here.
"""

from __future__ import annotations

from lms.core.config import SETTINGS
from lms.db.engine import async_session_factory
from lms.repos.course_repo import (
    InMemoryCourseRepo,
    InMemoryLessonRepo,
    InMemoryModuleRepo,
)
from lms.repos.enrollment_repo import InMemoryEnrollmentRepo
from lms.repos.group_repo import InMemoryGroupRepo
from lms.repos.homework_repo import InMemoryHomeworkRepo, InMemorySubmissionRepo
from lms.repos.notification_repo import InMemoryNotificationRepo
from lms.repos.quiz_repo import InMemoryQuizRepo, InMemoryQuizSubmissionRepo
from lms.repos.stream_repo import InMemoryStreamRepo
from lms.repos.tariff_repo import InMemoryTariffRepo
from lms.repos.user_repo import InMemoryUserRepo
from lms.services.admin_service import AdminService
from lms.services.analytics_service import AnalyticsService
from lms.services.auth_service import AuthService
from lms.services.cache import cache_service
from lms.services.channels import EmailChannel, build_channels
from lms.services.courses_service import CourseService
from lms.services.enrollments_service import EnrollmentService
from lms.services.groups_service import GroupService
from lms.services.homeworks_service import HomeworkService
from lms.services.notifications_service import NotificationService
from lms.services.quizzes_service import QuizService
from lms.services.realtime import manager
from lms.services.scheduler import DeadlineScanner, DeadlineScheduler
from lms.services.streams_service import StreamService
from lms.services.tariffs_service import TariffService
from lms.services.templates import TemplateStore
from lms.services.users_service import UserService

# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

if async_session_factory is not None:
    from lms.repos.pg_course_repo import PgCourseRepo, PgLessonRepo, PgModuleRepo
    from lms.repos.pg_enrollment_repo import PgEnrollmentRepo
    from lms.repos.pg_group_repo import PgGroupRepo
    from lms.repos.pg_homework_repo import PgHomeworkRepo, PgSubmissionRepo
    from lms.repos.pg_notification_repo import PgNotificationRepo
    from lms.repos.pg_quiz_repo import PgQuizRepo, PgQuizSubmissionRepo
    from lms.repos.pg_stream_repo import PgStreamRepo
    from lms.repos.pg_tariff_repo import PgTariffRepo
    from lms.repos.pg_user_repo import PgUserRepo

    user_repo = PgUserRepo(async_session_factory)
    group_repo = PgGroupRepo(async_session_factory)
    course_repo = PgCourseRepo(async_session_factory)
    module_repo = PgModuleRepo(async_session_factory)
    lesson_repo = PgLessonRepo(async_session_factory)
    stream_repo = PgStreamRepo(async_session_factory)
    tariff_repo = PgTariffRepo(async_session_factory)
    enrollment_repo = PgEnrollmentRepo(async_session_factory)
    homework_repo = PgHomeworkRepo(async_session_factory)
    submission_repo = PgSubmissionRepo(async_session_factory)
    quiz_repo = PgQuizRepo(async_session_factory)
    quiz_submission_repo = PgQuizSubmissionRepo(async_session_factory)
    notification_repo = PgNotificationRepo(async_session_factory)
else:
    user_repo = InMemoryUserRepo()
    group_repo = InMemoryGroupRepo()
    course_repo = InMemoryCourseRepo()
    module_repo = InMemoryModuleRepo()
    lesson_repo = InMemoryLessonRepo()
    stream_repo = InMemoryStreamRepo()
    tariff_repo = InMemoryTariffRepo()
    enrollment_repo = InMemoryEnrollmentRepo()
    homework_repo = InMemoryHomeworkRepo()
    submission_repo = InMemorySubmissionRepo()
    quiz_repo = InMemoryQuizRepo()
    quiz_submission_repo = InMemoryQuizSubmissionRepo()
    notification_repo = InMemoryNotificationRepo()

ALL_REPOS = (
    user_repo,
    group_repo,
    course_repo,
    module_repo,
    lesson_repo,
    stream_repo,
    tariff_repo,
    enrollment_repo,
    homework_repo,
    submission_repo,
    quiz_repo,
    quiz_submission_repo,
    notification_repo,
)

# ---------------------------------------------------------------------------
# Notification delivery
# ---------------------------------------------------------------------------

channels = build_channels(SETTINGS, manager)
template_store = TemplateStore(
    notification_repo, cache_service, ttl_seconds=SETTINGS.cache_ttl_seconds
)
notification_service = NotificationService(
    users=user_repo,
    notifications=notification_repo,
    cache=cache_service,
    channels=channels,
    templates=template_store,
    dedup_ttl_seconds=SETTINGS.notification_dedup_ttl_seconds,
)

# ---------------------------------------------------------------------------
# Domain services
# ---------------------------------------------------------------------------

user_service = UserService(users=user_repo)
auth_service = AuthService(
    users=user_repo,
    cache=cache_service,
    mailer=next((c for c in channels if isinstance(c, EmailChannel)), None),
)
course_service = CourseService(
    courses=course_repo, modules=module_repo, lessons=lesson_repo
)
group_service = GroupService(groups=group_repo, users=user_repo)
stream_service = StreamService(
    streams=stream_repo, users=user_repo, courses=course_service
)
tariff_service = TariffService(tariffs=tariff_repo, courses=course_service)
enrollment_service = EnrollmentService(
    enrollments=enrollment_repo,
    users=user_repo,
    streams=stream_repo,
    tariffs=tariff_repo,
    courses=course_service,
    notifier=notification_service,
    publisher=manager,
)
homework_service = HomeworkService(
    homeworks=homework_repo,
    submissions=submission_repo,
    courses=course_service,
    enrollments=enrollment_service,
    notifier=notification_service,
)
quiz_service = QuizService(
    quizzes=quiz_repo,
    submissions=quiz_submission_repo,
    courses=course_service,
    enrollments=enrollment_service,
    cache=cache_service,
    notifier=notification_service,
)
analytics_service = AnalyticsService(
    enrollments=enrollment_repo,
    courses=course_service,
    homeworks=homework_repo,
    submissions=submission_repo,
    quizzes=quiz_repo,
    quiz_submissions=quiz_submission_repo,
    cache=cache_service,
    publisher=manager,
)
admin_service = AdminService(
    users=user_repo,
    courses=course_repo,
    enrollments=enrollment_repo,
    notifications=notification_repo,
)
deadline_scanner = DeadlineScanner(
    homeworks=homework_repo,
    enrollments=enrollment_repo,
    courses=course_service,
    notifier=notification_service,
)
deadline_scheduler = DeadlineScheduler(
    deadline_scanner, interval_hours=SETTINGS.deadline_scan_interval_hours
)
