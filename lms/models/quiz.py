from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

# One answer per question: option indices for choice questions, text otherwise
Answer = tuple[int, ...] | str


@dataclass(frozen=True, slots=True)
class Question:
    question: str
    options: tuple[str, ...] = ()
    correct_answers: tuple[int, ...] = ()
    correct_text_answer: str | None = None
    weight: int = 1
    hint: str | None = None

    def is_correct(self, answer: Answer | None) -> bool:
        if answer is None:
            return False
        if self.correct_answers:
            if isinstance(answer, str):
                return False
            return set(answer) == set(self.correct_answers)
        if self.correct_text_answer is not None:
            if not isinstance(answer, str):
                return False
            return (
                answer.strip().casefold()
                == self.correct_text_answer.strip().casefold()
            )
        return False


@dataclass(frozen=True, slots=True)
class Quiz:
    id: UUID
    lesson_id: UUID
    title: str
    questions: tuple[Question, ...] = ()
    time_limit: int | None = None  # minutes

    @staticmethod
    def new(
        *,
        lesson_id: UUID,
        title: str,
        questions: tuple[Question, ...] = (),
        time_limit: int | None = None,
    ) -> Quiz:
        return Quiz(
            id=uuid4(),
            lesson_id=lesson_id,
            title=title,
            questions=questions,
            time_limit=time_limit,
        )


@dataclass(frozen=True, slots=True)
class QuizSubmission:
    id: UUID
    quiz_id: UUID
    student_id: UUID
    answers: tuple[Answer | None, ...]
    score: float
    submitted_at: datetime

    @staticmethod
    def new(
        *,
        quiz_id: UUID,
        student_id: UUID,
        answers: tuple[Answer | None, ...],
        score: float,
        submitted_at: datetime,
    ) -> QuizSubmission:
        return QuizSubmission(
            id=uuid4(),
            quiz_id=quiz_id,
            student_id=student_id,
            answers=answers,
            score=score,
            submitted_at=submitted_at,
        )
