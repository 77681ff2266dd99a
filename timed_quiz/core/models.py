"""Domain models for the quiz platform."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from timed_quiz.constants.quiz_constants import OPTION_COUNT


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class Identity:
    """Authenticated caller as handed over by the host shell."""

    id: str


@dataclass(slots=True)
class Quiz:
    """Quiz metadata. Immutable once stored."""

    id: str
    title: str
    description: str | None
    time_limit_minutes: int
    created_by: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class Question:
    """Multiple-choice question with exactly four options."""

    id: str
    quiz_id: str
    question_text: str
    options: list[str]
    correct_answer: int
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class Attempt:
    """One completed or time-expired pass through a quiz."""

    id: str
    quiz_id: str
    user_id: str
    score: int
    total_questions: int
    completed_at: datetime = field(default_factory=utc_now)

    @property
    def percentage(self) -> int:
        return percentage_of(self.score, self.total_questions)


@dataclass(slots=True)
class Feedback:
    """Rating and/or comment left by a user after an attempt."""

    id: str
    quiz_id: str
    user_id: str
    attempt_id: str
    rating: int | None = None
    feedback_text: str | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class AttemptRecord:
    """Attempt joined with its quiz and optional feedback for the history view."""

    attempt: Attempt
    quiz: Quiz
    feedback: Feedback | None = None


@dataclass(slots=True)
class QuestionDraft:
    """Unsaved question as submitted by the creation flow."""

    question_text: str
    options: list[str]
    correct_answer: int = 0

    def is_complete(self) -> bool:
        return (
            bool(self.question_text.strip())
            and len(self.options) == OPTION_COUNT
            and all(option.strip() for option in self.options)
            and 0 <= self.correct_answer < OPTION_COUNT
        )


@dataclass(slots=True)
class QuizDraft:
    """Unsaved quiz with its questions."""

    title: str
    time_limit_minutes: int
    questions: list[QuestionDraft]
    description: str | None = None


class EngineState(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(slots=True)
class AttemptResult:
    """Outcome handed back to the host shell when a session finishes."""

    score: int
    total_questions: int
    attempt_id: str | None = None
    persistence_error: str | None = None

    @property
    def percentage(self) -> int:
        return percentage_of(self.score, self.total_questions)

    @property
    def persisted(self) -> bool:
        return self.attempt_id is not None


@dataclass(slots=True)
class SessionSnapshot:
    """Observable engine state used for rendering."""

    state: EngineState
    current_index: int
    answers: list[int | None]
    remaining_seconds: int
    finished: bool
    result: AttemptResult | None = None

    @property
    def total_questions(self) -> int:
        return len(self.answers)

    @property
    def answered_count(self) -> int:
        return sum(1 for answer in self.answers if answer is not None)


def percentage_of(score: int, total: int) -> int:
    """Rounded percentage, 0 for an empty total."""
    if total <= 0:
        return 0
    return round(score / total * 100)
