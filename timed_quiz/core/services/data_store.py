"""Data store collaborator: the persistence contract and an in-memory implementation."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Protocol
from uuid import uuid4

from timed_quiz.constants.quiz_constants import MAX_RATING, MIN_RATING, OPTION_COUNT
from timed_quiz.core.errors import ConflictError, NotFoundError, ValidationError
from timed_quiz.core.models import (
    Attempt,
    AttemptRecord,
    Feedback,
    Question,
    QuestionDraft,
    Quiz,
)

logger = logging.getLogger(__name__)


class DataStore(Protocol):
    """Operations the platform consumes from its persistence service.

    Implementations raise ``DataStoreError`` (or a subclass) on failure.
    """

    def fetch_quiz(self, quiz_id: str) -> Quiz: ...

    def fetch_quizzes(self) -> list[Quiz]: ...

    def create_quiz(
        self,
        title: str,
        description: str | None,
        time_limit_minutes: int,
        created_by: str,
    ) -> Quiz: ...

    def delete_quiz(self, quiz_id: str) -> None: ...

    def create_questions(self, quiz_id: str, drafts: list[QuestionDraft]) -> list[Question]: ...

    def fetch_questions(self, quiz_id: str) -> list[Question]: ...

    def create_attempt(
        self,
        quiz_id: str,
        user_id: str,
        score: int,
        total_questions: int,
    ) -> Attempt: ...

    def fetch_attempt(self, attempt_id: str) -> Attempt: ...

    def fetch_attempts(self, user_id: str) -> list[AttemptRecord]: ...

    def create_feedback(
        self,
        quiz_id: str,
        user_id: str,
        attempt_id: str,
        rating: int | None,
        feedback_text: str | None,
    ) -> Feedback: ...


class InMemoryDataStore:
    """Process-local store keeping the four record collections in dictionaries."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._quizzes: dict[str, Quiz] = {}
        self._questions: dict[str, list[Question]] = {}
        self._attempts: dict[str, Attempt] = {}
        self._feedback_by_attempt: dict[str, Feedback] = {}

    # --- Quizzes ---

    def fetch_quiz(self, quiz_id: str) -> Quiz:
        with self._lock:
            return self._get_quiz(quiz_id)

    def fetch_quizzes(self) -> list[Quiz]:
        """Return all quizzes, newest first."""
        with self._lock:
            ordered = sorted(self._quizzes.values(), key=lambda q: q.created_at)
            return ordered[::-1]

    def create_quiz(
        self,
        title: str,
        description: str | None,
        time_limit_minutes: int,
        created_by: str,
    ) -> Quiz:
        cleaned_title = title.strip()
        if not cleaned_title:
            raise ValidationError("Quiz title must not be empty.")
        cleaned_description = (description or "").strip() or None
        normalized_time_limit = self._normalize_time_limit(time_limit_minutes)

        quiz = Quiz(
            id=uuid4().hex,
            title=cleaned_title,
            description=cleaned_description,
            time_limit_minutes=normalized_time_limit,
            created_by=created_by,
        )
        with self._lock:
            self._quizzes[quiz.id] = quiz
            self._questions[quiz.id] = []
        logger.info("Created quiz %s (%s)", quiz.id, quiz.title)
        return quiz

    def delete_quiz(self, quiz_id: str) -> None:
        """Remove a quiz together with its questions; quizzes with attempts are kept."""
        with self._lock:
            self._get_quiz(quiz_id)
            if any(a.quiz_id == quiz_id for a in self._attempts.values()):
                raise ConflictError(f"Quiz {quiz_id} has recorded attempts.")
            del self._quizzes[quiz_id]
            self._questions.pop(quiz_id, None)
        logger.info("Deleted quiz %s", quiz_id)

    # --- Questions ---

    def create_questions(self, quiz_id: str, drafts: list[QuestionDraft]) -> list[Question]:
        """Validate and store a batch of questions; nothing is stored if any draft is invalid."""
        prepared = [self._prepare_question(quiz_id, draft) for draft in drafts]
        with self._lock:
            self._get_quiz(quiz_id)
            self._questions[quiz_id].extend(prepared)
        return list(prepared)

    def fetch_questions(self, quiz_id: str) -> list[Question]:
        """Return a copy of the quiz's questions in creation order."""
        with self._lock:
            self._get_quiz(quiz_id)
            return list(self._questions.get(quiz_id, []))

    # --- Attempts ---

    def create_attempt(
        self,
        quiz_id: str,
        user_id: str,
        score: int,
        total_questions: int,
    ) -> Attempt:
        if not 0 <= score <= total_questions:
            raise ValidationError("Score must be between 0 and the number of questions.")
        attempt = Attempt(
            id=uuid4().hex,
            quiz_id=quiz_id,
            user_id=user_id,
            score=score,
            total_questions=total_questions,
        )
        with self._lock:
            self._get_quiz(quiz_id)
            self._attempts[attempt.id] = attempt
        return attempt

    def fetch_attempt(self, attempt_id: str) -> Attempt:
        with self._lock:
            attempt = self._attempts.get(attempt_id)
            if attempt is None:
                raise NotFoundError(f"Attempt {attempt_id} not found")
            return attempt

    def fetch_attempts(self, user_id: str) -> list[AttemptRecord]:
        """Return the user's attempts joined with quiz and feedback, newest first."""
        with self._lock:
            attempts = [a for a in self._attempts.values() if a.user_id == user_id]
            attempts.sort(key=lambda a: a.completed_at)
            attempts.reverse()
            return [
                AttemptRecord(
                    attempt=attempt,
                    quiz=self._quizzes[attempt.quiz_id],
                    feedback=self._feedback_by_attempt.get(attempt.id),
                )
                for attempt in attempts
            ]

    # --- Feedback ---

    def create_feedback(
        self,
        quiz_id: str,
        user_id: str,
        attempt_id: str,
        rating: int | None,
        feedback_text: str | None,
    ) -> Feedback:
        if rating is not None and not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}.")
        cleaned_text = (feedback_text or "").strip() or None

        with self._lock:
            if attempt_id not in self._attempts:
                raise NotFoundError(f"Attempt {attempt_id} not found")
            if attempt_id in self._feedback_by_attempt:
                raise ConflictError("Feedback has already been submitted for this attempt.")
            feedback = Feedback(
                id=uuid4().hex,
                quiz_id=quiz_id,
                user_id=user_id,
                attempt_id=attempt_id,
                rating=rating,
                feedback_text=cleaned_text,
            )
            self._feedback_by_attempt[attempt_id] = feedback
        return feedback

    # --- Helpers ---

    def _get_quiz(self, quiz_id: str) -> Quiz:
        quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz {quiz_id} not found")
        return quiz

    def _prepare_question(self, quiz_id: str, draft: QuestionDraft) -> Question:
        """Validate and normalize a question before storage."""
        options = self._validate_options(draft.options)
        if not 0 <= draft.correct_answer < OPTION_COUNT:
            raise ValidationError("Correct option index must be between 0 and 3.")

        cleaned_text = draft.question_text.strip()
        if not cleaned_text:
            raise ValidationError("Question text must not be empty.")

        return Question(
            id=uuid4().hex,
            quiz_id=quiz_id,
            question_text=cleaned_text,
            options=options,
            correct_answer=draft.correct_answer,
        )

    @staticmethod
    def _validate_options(options: list[str]) -> list[str]:
        if len(options) != OPTION_COUNT:
            raise ValidationError("Each question must have exactly four options.")
        cleaned = [option.strip() for option in options]
        if any(not option for option in cleaned):
            raise ValidationError("Option text cannot be empty.")
        return cleaned

    @staticmethod
    def _normalize_time_limit(time_limit_minutes: int) -> int:
        if isinstance(time_limit_minutes, bool) or not isinstance(time_limit_minutes, int):
            raise ValidationError("Time limit must be provided as an integer number of minutes.")
        if time_limit_minutes <= 0:
            raise ValidationError("Time limit must be a positive integer.")
        return time_limit_minutes
