"""Quizzes: authoring, timed attempts, scoring.

A quiz with a time limit is attempted in two steps.  start_quiz() caches
the start time under `quiz:start:{quiz_id}:{student_id}` with a TTL of
the limit; submit_quiz() rejects the attempt if that entry is gone or the
elapsed time is over the limit.  Quizzes without a limit can be
submitted directly.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from lms.core.clock import Clock, utcnow
from lms.models.quiz import Answer, Question, Quiz, QuizSubmission
from lms.repos.base import DuplicateKeyError
from lms.repos.quiz_repo import QuizRepo, QuizSubmissionRepo
from lms.services import templates
from lms.services.cache import CacheService
from lms.services.enrollments_service import EnrollmentService
from lms.services.errors import (
    CourseAlreadyCompleted,
    LessonNotFound,
    QuizAlreadySubmitted,
    QuizNotFound,
    TimeLimitExceeded,
    ValidationFailed,
)
from lms.services.ids import parse_id
from lms.services.interfaces import CourseSummaryLookup, Notifier

logger = logging.getLogger(__name__)


def start_key(quiz_id: UUID, student_id: UUID) -> str:
    return f"quiz:start:{quiz_id}:{student_id}"


def score_answers(
    questions: Sequence[Question], answers: Sequence[Answer | None]
) -> tuple[int, float]:
    """Return (earned weight, score in percent rounded to 2 decimals)."""
    earned = 0
    total = 0
    for i, question in enumerate(questions):
        weight = question.weight or 1
        total += weight
        answer = answers[i] if i < len(answers) else None
        if question.is_correct(answer):
            earned += weight
    score = round(earned / total * 100, 2) if total else 0.0
    return earned, score


def _check_questions(questions: Sequence[Question]) -> None:
    if not questions:
        raise ValidationFailed("a quiz needs at least one question")
    for n, q in enumerate(questions, start=1):
        if not q.question.strip():
            raise ValidationFailed(f"question {n}: text must not be empty")
        if q.weight < 1:
            raise ValidationFailed(f"question {n}: weight must be >= 1")
        if q.correct_answers:
            if not q.options:
                raise ValidationFailed(f"question {n}: choices without options")
            if any(not 0 <= i < len(q.options) for i in q.correct_answers):
                raise ValidationFailed(f"question {n}: correct answer out of range")
        elif q.correct_text_answer is None or not q.correct_text_answer.strip():
            raise ValidationFailed(f"question {n}: no correct answer given")


def _check_time_limit(time_limit: int | None) -> None:
    if time_limit is not None and time_limit <= 0:
        raise ValidationFailed("time_limit must be a positive number of minutes")


class QuizService:
    def __init__(
        self,
        *,
        quizzes: QuizRepo,
        submissions: QuizSubmissionRepo,
        courses: CourseSummaryLookup,
        enrollments: EnrollmentService,
        cache: CacheService,
        notifier: Notifier,
        clock: Clock = utcnow,
    ) -> None:
        self._quizzes = quizzes
        self._submissions = submissions
        self._courses = courses
        self._enrollments = enrollments
        self._cache = cache
        self._notifier = notifier
        self._clock = clock

    # --- authoring ---

    async def create_quiz(
        self,
        *,
        lesson_id: str | UUID,
        title: str,
        questions: Sequence[Question],
        time_limit: int | None = None,
    ) -> Quiz:
        lid = parse_id(lesson_id, "lesson_id")
        if await self._courses.locate_lesson(lid) is None:
            raise LessonNotFound(lid)
        if not title.strip():
            raise ValidationFailed("title must not be empty")
        _check_questions(questions)
        _check_time_limit(time_limit)

        quiz = Quiz.new(
            lesson_id=lid,
            title=title.strip(),
            questions=tuple(questions),
            time_limit=time_limit,
        )
        await self._quizzes.add(quiz)
        logger.info("Created quiz id=%s lesson=%s", quiz.id, lid)
        return quiz

    async def get_quiz(self, quiz_id: str | UUID) -> Quiz:
        qid = parse_id(quiz_id, "quiz_id")
        quiz = await self._quizzes.get(qid)
        if quiz is None:
            raise QuizNotFound(qid)
        return quiz

    async def list_quizzes(self, lesson_id: str | UUID) -> list[Quiz]:
        return await self._quizzes.list_by_lesson(parse_id(lesson_id, "lesson_id"))

    async def update_quiz(
        self,
        quiz_id: str | UUID,
        *,
        title: str | None = None,
        questions: Sequence[Question] | None = None,
        time_limit: int | None = None,
    ) -> Quiz:
        quiz = await self.get_quiz(quiz_id)
        if title is not None and not title.strip():
            raise ValidationFailed("title must not be empty")
        if questions is not None:
            _check_questions(questions)
        _check_time_limit(time_limit)
        updated = replace(
            quiz,
            title=title.strip() if title is not None else quiz.title,
            questions=tuple(questions) if questions is not None else quiz.questions,
            time_limit=time_limit if time_limit is not None else quiz.time_limit,
        )
        return await self._quizzes.save(updated)

    async def delete_quiz(self, quiz_id: str | UUID) -> None:
        quiz = await self.get_quiz(quiz_id)
        await self._quizzes.delete(quiz.id)
        logger.info("Deleted quiz id=%s", quiz.id)

    async def get_hint(
        self, quiz_id: str | UUID, question_index: int
    ) -> str | None:
        quiz = await self.get_quiz(quiz_id)
        if not 0 <= question_index < len(quiz.questions):
            raise ValidationFailed(f"no question at index {question_index}")
        return quiz.questions[question_index].hint

    # --- attempts ---

    async def start_quiz(
        self, quiz_id: str | UUID, student_id: str | UUID
    ) -> datetime:
        """Open a timed attempt; returns its start time.

        Starting again while an attempt is open keeps the original start.
        """
        quiz = await self.get_quiz(quiz_id)
        sid = parse_id(student_id, "student_id")
        await self._enrollment_for(quiz, sid)
        if await self._submissions.get_for(quiz.id, sid) is not None:
            raise QuizAlreadySubmitted(f"quiz {quiz.id} already submitted")

        now = self._clock()
        if quiz.time_limit is None:
            return now

        key = start_key(quiz.id, sid)
        existing = await self._cache.get(key)
        if existing is not None:
            return datetime.fromisoformat(existing)
        await self._cache.set(key, now.isoformat(), quiz.time_limit * 60)
        logger.info("Quiz attempt opened quiz=%s student=%s", quiz.id, sid)
        return now

    async def submit_quiz(
        self,
        student_id: str | UUID,
        quiz_id: str | UUID,
        answers: Sequence[Answer | None],
    ) -> QuizSubmission:
        quiz = await self.get_quiz(quiz_id)
        sid = parse_id(student_id, "student_id")
        if await self._submissions.get_for(quiz.id, sid) is not None:
            raise QuizAlreadySubmitted(f"quiz {quiz.id} already submitted")
        if len(answers) > len(quiz.questions):
            raise ValidationFailed("more answers than questions")

        module_id, course_id = await self._enrollment_for(quiz, sid)

        now = self._clock()
        key = start_key(quiz.id, sid)
        if quiz.time_limit is not None:
            started = await self._cache.get(key)
            if started is None:
                raise TimeLimitExceeded(quiz.time_limit)
            elapsed = (now - datetime.fromisoformat(started)).total_seconds() / 60
            if elapsed > quiz.time_limit:
                logger.info(
                    "Late quiz submission rejected quiz=%s student=%s elapsed=%.1f",
                    quiz.id,
                    sid,
                    elapsed,
                )
                raise TimeLimitExceeded(quiz.time_limit, elapsed)

        earned, score = score_answers(quiz.questions, answers)
        submission = QuizSubmission.new(
            quiz_id=quiz.id,
            student_id=sid,
            answers=tuple(answers),
            score=score,
            submitted_at=now,
        )
        try:
            await self._submissions.add(submission)
        except DuplicateKeyError:
            raise QuizAlreadySubmitted(
                f"quiz {quiz.id} already submitted by {sid}"
            ) from None
        logger.info("Quiz %s submitted by %s score=%.2f", quiz.id, sid, score)

        await self._enrollments.update_student_progress(
            sid, course_id, module_id, quiz.lesson_id
        )
        if earned:
            try:
                await self._enrollments.award_points(sid, course_id, earned)
            except CourseAlreadyCompleted:
                logger.info("No points for quiz %s: course completed", quiz.id)

        try:
            await self._notifier.notify_event(
                sid,
                templates.QUIZ_SUBMISSION,
                {"quiz_title": quiz.title, "score": score, "points": earned},
                fingerprint=f"quiz_submission:{submission.id}",
            )
        except Exception:
            logger.exception("Quiz notification failed for %s", submission.id)

        if quiz.time_limit is not None:
            await self._cache.delete(key)
        return submission

    async def get_submission(
        self, quiz_id: str | UUID, student_id: str | UUID
    ) -> QuizSubmission | None:
        return await self._submissions.get_for(
            parse_id(quiz_id, "quiz_id"), parse_id(student_id, "student_id")
        )

    async def list_submissions_by_student(
        self, student_id: str | UUID
    ) -> list[QuizSubmission]:
        sid = parse_id(student_id, "student_id")
        return await self._submissions.list_by_student(sid)

    async def list_submissions_by_quiz(
        self, quiz_id: str | UUID
    ) -> list[QuizSubmission]:
        quiz = await self.get_quiz(quiz_id)
        return await self._submissions.list_by_quiz(quiz.id)

    async def _enrollment_for(
        self, quiz: Quiz, student_id: UUID
    ) -> tuple[UUID, UUID]:
        """(module_id, course_id) of the quiz; the student must be enrolled."""
        located = await self._courses.locate_lesson(quiz.lesson_id)
        if located is None:
            raise LessonNotFound(quiz.lesson_id)
        _, module = located
        await self._enrollments.get_for(student_id, module.course_id)
        return module.id, module.course_id
