"""Quiz authoring and attempts.

Students get the public view of a quiz (no correct answers); the
authoring endpoints return the full view to staff.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict

from lms.api.dependencies import (
    STAFF,
    TEACHING,
    CurrentUser,
    ensure_self_or_staff,
    require_any_role,
)
from lms.models.principal import Principal
from lms.models.quiz import Answer, Question, Quiz, QuizSubmission
from lms.services.errors import SubmissionNotFound
from lms.wiring import quiz_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["quizzes"])

Teaching = Annotated[Principal, Depends(require_any_role(TEACHING))]


class QuestionIn(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    question: str
    options: list[str] = []
    correct_answers: list[int] = []
    correct_text_answer: str | None = None
    weight: int = 1
    hint: str | None = None

    def to_model(self) -> Question:
        return Question(
            question=self.question,
            options=tuple(self.options),
            correct_answers=tuple(self.correct_answers),
            correct_text_answer=self.correct_text_answer,
            weight=self.weight,
            hint=self.hint,
        )


class QuizIn(BaseModel):
    lesson_id: str
    title: str
    questions: list[QuestionIn]
    time_limit: int | None = None


class QuizUpdateIn(BaseModel):
    title: str | None = None
    questions: list[QuestionIn] | None = None
    time_limit: int | None = None


class QuizOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lesson_id: UUID
    title: str
    questions: list[QuestionIn]
    time_limit: int | None


class PublicQuestionOut(BaseModel):
    question: str
    options: list[str]
    weight: int
    has_hint: bool


class PublicQuizOut(BaseModel):
    id: UUID
    lesson_id: UUID
    title: str
    questions: list[PublicQuestionOut]
    time_limit: int | None


class SubmitIn(BaseModel):
    answers: list[list[int] | str | None]


class StartOut(BaseModel):
    quiz_id: UUID
    started_at: datetime
    time_limit: int | None


class HintOut(BaseModel):
    index: int
    hint: str | None


class QuizSubmissionOut(BaseModel):
    id: UUID
    quiz_id: UUID
    student_id: UUID
    answers: list[list[int] | str | None]
    score: float
    submitted_at: datetime


def public_quiz(quiz: Quiz) -> PublicQuizOut:
    return PublicQuizOut(
        id=quiz.id,
        lesson_id=quiz.lesson_id,
        title=quiz.title,
        questions=[
            PublicQuestionOut(
                question=q.question,
                options=list(q.options),
                weight=q.weight,
                has_hint=q.hint is not None,
            )
            for q in quiz.questions
        ],
        time_limit=quiz.time_limit,
    )


def submission_out(s: QuizSubmission) -> QuizSubmissionOut:
    return QuizSubmissionOut(
        id=s.id,
        quiz_id=s.quiz_id,
        student_id=s.student_id,
        answers=[a if a is None or isinstance(a, str) else list(a) for a in s.answers],
        score=s.score,
        submitted_at=s.submitted_at,
    )


def _answers(raw: list[list[int] | str | None]) -> list[Answer | None]:
    return [a if a is None or isinstance(a, str) else tuple(a) for a in raw]


@router.get("", response_model=list[PublicQuizOut])
async def list_quizzes(lesson_id: str, _principal: CurrentUser) -> list[PublicQuizOut]:
    return [public_quiz(q) for q in await quiz_service.list_quizzes(lesson_id)]


@router.post("", response_model=QuizOut, status_code=status.HTTP_201_CREATED)
async def create_quiz(payload: QuizIn, _principal: Teaching) -> QuizOut:
    quiz = await quiz_service.create_quiz(
        lesson_id=payload.lesson_id,
        title=payload.title,
        questions=[q.to_model() for q in payload.questions],
        time_limit=payload.time_limit,
    )
    return QuizOut.model_validate(quiz)


@router.get(
    "/submissions/student/{student_id}", response_model=list[QuizSubmissionOut]
)
async def student_submissions(
    student_id: str, principal: CurrentUser
) -> list[QuizSubmissionOut]:
    ensure_self_or_staff(principal, student_id)
    found = await quiz_service.list_submissions_by_student(student_id)
    return [submission_out(s) for s in found]


@router.get("/{quiz_id}", response_model=PublicQuizOut)
async def get_quiz(quiz_id: str, _principal: CurrentUser) -> PublicQuizOut:
    return public_quiz(await quiz_service.get_quiz(quiz_id))


@router.get("/{quiz_id}/full", response_model=QuizOut)
async def get_quiz_full(quiz_id: str, _principal: Teaching) -> QuizOut:
    return QuizOut.model_validate(await quiz_service.get_quiz(quiz_id))


@router.patch("/{quiz_id}", response_model=QuizOut)
async def update_quiz(
    quiz_id: str, payload: QuizUpdateIn, _principal: Teaching
) -> QuizOut:
    questions = None
    if payload.questions is not None:
        questions = [q.to_model() for q in payload.questions]
    quiz = await quiz_service.update_quiz(
        quiz_id,
        title=payload.title,
        questions=questions,
        time_limit=payload.time_limit,
    )
    return QuizOut.model_validate(quiz)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(quiz_id: str, _principal: Teaching) -> None:
    await quiz_service.delete_quiz(quiz_id)


@router.get("/{quiz_id}/hints/{index}", response_model=HintOut)
async def get_hint(quiz_id: str, index: int, _principal: CurrentUser) -> HintOut:
    return HintOut(index=index, hint=await quiz_service.get_hint(quiz_id, index))


@router.post("/{quiz_id}/start", response_model=StartOut)
async def start_quiz(quiz_id: str, principal: CurrentUser) -> StartOut:
    quiz = await quiz_service.get_quiz(quiz_id)
    started_at = await quiz_service.start_quiz(quiz.id, principal.user_id)
    return StartOut(quiz_id=quiz.id, started_at=started_at, time_limit=quiz.time_limit)


@router.post(
    "/{quiz_id}/submit",
    response_model=QuizSubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_quiz(
    quiz_id: str, payload: SubmitIn, principal: CurrentUser
) -> QuizSubmissionOut:
    submission = await quiz_service.submit_quiz(
        principal.user_id, quiz_id, _answers(payload.answers)
    )
    return submission_out(submission)


@router.get("/{quiz_id}/submissions", response_model=list[QuizSubmissionOut])
async def quiz_submissions(
    quiz_id: str,
    _principal: Annotated[Principal, Depends(require_any_role(STAFF))],
) -> list[QuizSubmissionOut]:
    found = await quiz_service.list_submissions_by_quiz(quiz_id)
    return [submission_out(s) for s in found]


@router.get("/{quiz_id}/submissions/{student_id}", response_model=QuizSubmissionOut)
async def student_quiz_submission(
    quiz_id: str, student_id: str, principal: CurrentUser
) -> QuizSubmissionOut:
    ensure_self_or_staff(principal, student_id)
    submission = await quiz_service.get_submission(quiz_id, student_id)
    if submission is None:
        raise SubmissionNotFound()
    return submission_out(submission)
