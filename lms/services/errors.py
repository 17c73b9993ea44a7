"""Domain exceptions.

Services raise these; lms/api/errors.py turns every LmsError into a
JSON response with the class's status code.  ChannelError and
DeliveryFailed never reach HTTP: the notification dispatcher catches
them at the fan-out boundary.
"""

from __future__ import annotations

from uuid import UUID


class LmsError(Exception):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


# --- 400: validation ---


class ValidationFailed(LmsError):
    status_code = 400


class InvalidIdentifier(ValidationFailed):
    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"invalid {field}: {value!r}")
        self.field = field


class InvalidGrade(ValidationFailed):
    def __init__(self, grade: object) -> None:
        super().__init__(f"grade must be between 0 and 100 (got {grade!r})")


class TimeLimitExceeded(ValidationFailed):
    def __init__(
        self, limit_minutes: int, elapsed_minutes: float | None = None
    ) -> None:
        if elapsed_minutes is None:
            detail = f"no open attempt: the {limit_minutes} min window has closed"
        else:
            detail = (
                f"time limit exceeded: {elapsed_minutes:.1f} min > {limit_minutes} min"
            )
        super().__init__(detail)


class CourseAlreadyCompleted(ValidationFailed):
    pass


# --- 401 / 403 ---


class AuthenticationFailed(LmsError):
    status_code = 401


class PermissionDenied(LmsError):
    status_code = 403


# --- 404 ---


class NotFound(LmsError):
    status_code = 404
    entity = "resource"

    def __init__(self, entity_id: object = None) -> None:
        detail = f"{self.entity} not found"
        if entity_id is not None:
            detail = f"{self.entity} {entity_id} not found"
        super().__init__(detail)


class UserNotFound(NotFound):
    entity = "user"


class CourseNotFound(NotFound):
    entity = "course"


class ModuleNotFound(NotFound):
    entity = "module"


class LessonNotFound(NotFound):
    entity = "lesson"


class EnrollmentNotFound(NotFound):
    entity = "enrollment"


class NotificationNotFound(NotFound):
    entity = "notification"


class HomeworkNotFound(NotFound):
    entity = "homework"


class SubmissionNotFound(NotFound):
    entity = "submission"


class QuizNotFound(NotFound):
    entity = "quiz"


class GroupNotFound(NotFound):
    entity = "group"


class StreamNotFound(NotFound):
    entity = "stream"


class TariffNotFound(NotFound):
    entity = "tariff"


class TemplateNotFound(NotFound):
    entity = "notification template"


# --- 409 ---


class Conflict(LmsError):
    status_code = 409


class AlreadyEnrolled(Conflict):
    def __init__(self, student_id: UUID, course_id: UUID) -> None:
        super().__init__(f"student {student_id} is already enrolled in {course_id}")


class AlreadySubmitted(Conflict):
    pass


class QuizAlreadySubmitted(Conflict):
    pass


class EmailAlreadyExists(Conflict):
    pass


# --- delivery (internal) ---


class ChannelError(Exception):
    """One channel failed to deliver one message."""

    def __init__(self, channel: str, reason: str) -> None:
        super().__init__(f"{channel}: {reason}")
        self.channel = channel
        self.reason = reason


class DeliveryFailed(Exception):
    """Every channel attempted for a recipient failed."""

    def __init__(self, user_id: UUID, failures: list[ChannelError]) -> None:
        channels = ", ".join(f.channel for f in failures)
        super().__init__(f"delivery to {user_id} failed on all channels ({channels})")
        self.user_id = user_id
        self.failures = failures
