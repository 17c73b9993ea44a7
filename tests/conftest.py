from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

# Settings are read once at import time: pin a hermetic environment first
os.environ["APP_ENV"] = "test"
for _name in (
    "DATABASE_URL",
    "REDIS_URL",
    "JWT_SECRET",
    "SMTP_HOST",
    "TELEGRAM_BOT_TOKEN",
    "SMS_API_KEY",
):
    os.environ[_name] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from lms import wiring  # noqa: E402
from lms.main import app  # noqa: E402
from lms.models.course import Course, Lesson, Module  # noqa: E402
from lms.models.user import User  # noqa: E402
from lms.repos.course_repo import (  # noqa: E402
    InMemoryCourseRepo,
    InMemoryLessonRepo,
    InMemoryModuleRepo,
)
from lms.repos.enrollment_repo import InMemoryEnrollmentRepo  # noqa: E402
from lms.repos.homework_repo import (  # noqa: E402
    InMemoryHomeworkRepo,
    InMemorySubmissionRepo,
)
from lms.repos.notification_repo import InMemoryNotificationRepo  # noqa: E402
from lms.repos.quiz_repo import (  # noqa: E402
    InMemoryQuizRepo,
    InMemoryQuizSubmissionRepo,
)
from lms.repos.stream_repo import InMemoryStreamRepo  # noqa: E402
from lms.repos.tariff_repo import InMemoryTariffRepo  # noqa: E402
from lms.repos.user_repo import InMemoryUserRepo  # noqa: E402
from lms.services import token_service  # noqa: E402
from lms.services.admin_service import AdminService  # noqa: E402
from lms.services.analytics_service import AnalyticsService  # noqa: E402
from lms.services.cache import InMemoryCacheService, cache_service  # noqa: E402
from lms.services.channels import OutboundMessage  # noqa: E402
from lms.services.courses_service import CourseService  # noqa: E402
from lms.services.enrollments_service import EnrollmentService  # noqa: E402
from lms.services.errors import ChannelError  # noqa: E402
from lms.services.homeworks_service import HomeworkService  # noqa: E402
from lms.services.notifications_service import NotificationService  # noqa: E402
from lms.services.quizzes_service import QuizService  # noqa: E402
from lms.services.realtime import manager  # noqa: E402
from lms.services.scheduler import DeadlineScanner  # noqa: E402
from lms.services.task_queue import task_queue  # noqa: E402
from lms.services.templates import TemplateStore  # noqa: E402


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Empty every in-memory repository between tests."""
    for repo in wiring.ALL_REPOS:
        repo._rows.clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests (dedup keys, templates, quiz timers)."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_rooms() -> None:
    manager.rooms.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(sub: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid HS256 JWT for testing."""
    return token_service.create_access_token(sub=sub, roles=roles)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token() -> str:
    return mint_token(sub="test-admin", roles=["admin"])


# ---------------------------------------------------------------------------
# Seeding the application's own repositories
# ---------------------------------------------------------------------------

DEFAULT_PASSWORD = "correct-horse-battery"


def seed_user(
    role: str = "student",
    *,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
    name: str = "",
    phone: str | None = None,
) -> User:
    """Create a user through the service (real argon2 hash)."""
    return asyncio.run(
        wiring.user_service.create_user(
            email=email or f"{role}-{os.urandom(3).hex()}@example.com",
            password=password,
            name=name,
            roles=(role,),
            phone=phone,
        )
    )


def token_for(user: User) -> str:
    return mint_token(sub=str(user.id), roles=list(user.roles))


def seed_course(
    modules: int = 2, lessons_per_module: int = 2, title: str = "Python 101"
) -> tuple[Course, list[tuple[Module, list[Lesson]]]]:
    """Course with `modules` modules of `lessons_per_module` lessons each."""

    async def _build():
        svc = wiring.course_service
        course = await svc.create_course(title=title)
        structure = []
        for m in range(modules):
            module = await svc.add_module(course.id, title=f"Module {m + 1}")
            lessons = [
                await svc.add_lesson(module.id, title=f"Lesson {m + 1}.{n + 1}")
                for n in range(lessons_per_module)
            ]
            structure.append((module, lessons))
        return course, structure

    return asyncio.run(_build())


# ---------------------------------------------------------------------------
# Isolated service graphs for service-level tests
# ---------------------------------------------------------------------------


class FakeClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@dataclass
class RecordingChannel:
    """Channel double: records deliveries, fails for chosen targets."""

    name: str = "websocket"
    fail_for: set[str] = field(default_factory=set)
    sent: list[tuple[str, OutboundMessage]] = field(default_factory=list)

    def address_for(self, user: User) -> str | None:
        return str(user.id)

    async def send(self, target: str, message: OutboundMessage) -> None:
        if target in self.fail_for:
            raise ChannelError(self.name, "unreachable")
        self.sent.append((target, message))


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    async def publish(self, room: str, event: str, data: dict) -> int:
        self.events.append((room, event, data))
        return 1


def build_graph(
    clock: FakeClock | None = None, channels: list | None = None
) -> SimpleNamespace:
    """Wire a fresh set of services over fresh in-memory repositories."""
    clock = clock or FakeClock()
    channel = RecordingChannel()
    channels = channels if channels is not None else [channel]
    publisher = RecordingPublisher()
    cache = InMemoryCacheService(clock)

    users = InMemoryUserRepo()
    course_repo = InMemoryCourseRepo()
    enrollment_repo = InMemoryEnrollmentRepo()
    homework_repo = InMemoryHomeworkRepo()
    submission_repo = InMemorySubmissionRepo()
    quiz_repo = InMemoryQuizRepo()
    quiz_submission_repo = InMemoryQuizSubmissionRepo()
    notification_repo = InMemoryNotificationRepo()
    streams = InMemoryStreamRepo()
    tariffs = InMemoryTariffRepo()

    courses = CourseService(
        courses=course_repo,
        modules=InMemoryModuleRepo(),
        lessons=InMemoryLessonRepo(),
    )
    notifications = NotificationService(
        users=users,
        notifications=notification_repo,
        cache=cache,
        channels=channels,
        templates=TemplateStore(notification_repo, cache, ttl_seconds=3600),
        dedup_ttl_seconds=3600,
        clock=clock,
    )
    enrollments = EnrollmentService(
        enrollments=enrollment_repo,
        users=users,
        streams=streams,
        tariffs=tariffs,
        courses=courses,
        notifier=notifications,
        publisher=publisher,
        clock=clock,
    )
    return SimpleNamespace(
        clock=clock,
        channel=channel,
        publisher=publisher,
        cache=cache,
        user_repo=users,
        enrollment_repo=enrollment_repo,
        homework_repo=homework_repo,
        notification_repo=notification_repo,
        streams=streams,
        tariffs=tariffs,
        courses=courses,
        notifications=notifications,
        enrollments=enrollments,
        homeworks=HomeworkService(
            homeworks=homework_repo,
            submissions=submission_repo,
            courses=courses,
            enrollments=enrollments,
            notifier=notifications,
        ),
        quizzes=QuizService(
            quizzes=quiz_repo,
            submissions=quiz_submission_repo,
            courses=courses,
            enrollments=enrollments,
            cache=cache,
            notifier=notifications,
            clock=clock,
        ),
        analytics=AnalyticsService(
            enrollments=enrollment_repo,
            courses=courses,
            homeworks=homework_repo,
            submissions=submission_repo,
            quizzes=quiz_repo,
            quiz_submissions=quiz_submission_repo,
            cache=cache,
            publisher=publisher,
        ),
        admin=AdminService(
            users=users,
            courses=course_repo,
            enrollments=enrollment_repo,
            notifications=notification_repo,
        ),
        scanner=DeadlineScanner(
            homeworks=homework_repo,
            enrollments=enrollment_repo,
            courses=courses,
            notifier=notifications,
            clock=clock,
        ),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def graph(clock: FakeClock) -> SimpleNamespace:
    return build_graph(clock)


async def add_user(graph: SimpleNamespace, role: str = "student", **kw) -> User:
    """Insert a user straight into the graph's repo (no password hashing)."""
    user = User.new(
        email=kw.pop("email", f"{role}-{os.urandom(3).hex()}@example.com"),
        password_hash="unused",
        roles=(role,),
        **kw,
    )
    await graph.user_repo.add(user)
    return user


async def add_course(
    graph: SimpleNamespace, modules: int = 2, lessons_per_module: int = 2
) -> tuple[Course, list[tuple[Module, list[Lesson]]]]:
    course = await graph.courses.create_course(title="Algorithms")
    structure = []
    for m in range(modules):
        module = await graph.courses.add_module(course.id, title=f"M{m + 1}")
        lessons = [
            await graph.courses.add_lesson(module.id, title=f"L{m + 1}.{n + 1}")
            for n in range(lessons_per_module)
        ]
        structure.append((module, lessons))
    return course, structure
