"""Timed quiz attempt: question navigation, countdown, scoring and persistence.

One ``QuizAttemptEngine`` owns one user's pass through one quiz. It moves
through three states::

    loading --start()--> active --advance() on last question / time out--> finished

Unanswered-question policy: ``advance()`` is always allowed, whether or not the
current question has an answer. Unanswered questions simply score as incorrect,
which is the same rule the time-expiry path needs when the clock runs out in the
middle of the quiz.

``finish()`` is the only place an attempt is written. Its first action is the
finished-flag check, so the clock running out and the user finishing on the last
question can both call it and at most one attempt is ever persisted.
"""

from __future__ import annotations

import logging
from datetime import datetime
from threading import RLock
from typing import Callable

from timed_quiz.constants.quiz_constants import OPTION_COUNT
from timed_quiz.core.errors import DataStoreError, LoadError, PersistenceError, ValidationError
from timed_quiz.core.models import (
    AttemptResult,
    EngineState,
    Identity,
    Question,
    Quiz,
    SessionSnapshot,
    utc_now,
)
from timed_quiz.core.services.countdown_clock import Clock, ClockFactory, CountdownClock
from timed_quiz.core.services.data_store import DataStore

logger = logging.getLogger(__name__)


def score_answers(questions: list[Question], answers: list[int | None]) -> int:
    """Count the questions whose recorded answer matches the correct option."""
    return sum(
        1
        for question, answer in zip(questions, answers)
        if answer is not None and answer == question.correct_answer
    )


def format_remaining_time(seconds: int) -> str:
    """Format a countdown as ``m:ss``."""
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes}:{secs:02d}"


class QuizAttemptEngine:
    """Manages the state of one timed quiz attempt."""

    def __init__(
        self,
        quiz: Quiz,
        identity: Identity,
        store: DataStore,
        clock_factory: ClockFactory = CountdownClock,
        on_finished: Callable[[AttemptResult], None] | None = None,
    ) -> None:
        self._lock = RLock()
        self._quiz = quiz
        self._identity = identity
        self._store = store
        self._clock_factory = clock_factory
        self._on_finished = on_finished

        self._state = EngineState.LOADING
        self._questions: list[Question] = []
        self._answers: list[int | None] = []
        self._current_index: int = 0
        self._remaining_seconds: int = quiz.time_limit_minutes * 60
        self._finished: bool = False
        self._clock: Clock | None = None
        self._result: AttemptResult | None = None
        self._finished_at: datetime | None = None

    def __enter__(self) -> QuizAttemptEngine:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Lifecycle ---

    def start(self) -> None:
        """Load the questions and start the countdown.

        Raises ``LoadError`` if the questions cannot be fetched or the quiz has
        none; the engine then stays in ``loading`` and the clock is never started.
        """
        with self._lock:
            if self._state is not EngineState.LOADING:
                raise RuntimeError("Session has already been started.")
            try:
                questions = self._store.fetch_questions(self._quiz.id)
            except DataStoreError as exc:
                logger.exception("Failed to load questions for quiz %s", self._quiz.id)
                raise LoadError(f"Failed to fetch questions: {exc}") from exc
            if not questions:
                raise LoadError("Quiz does not contain any questions.")

            self._questions = list(questions)
            self._answers = [None] * len(self._questions)
            self._current_index = 0
            self._remaining_seconds = self._quiz.time_limit_minutes * 60
            self._finished = False
            self._state = EngineState.ACTIVE

            self._clock = self._clock_factory(self.tick)
            self._clock.start()
            logger.info(
                "User %s started quiz %s (%d questions, %d seconds)",
                self._identity.id,
                self._quiz.id,
                len(self._questions),
                self._remaining_seconds,
            )

    def close(self) -> None:
        """Release the clock. An unfinished session is abandoned and nothing is persisted."""
        with self._lock:
            self._stop_clock()

    # --- User operations ---

    def select_answer(self, option_index: int) -> None:
        """Record ``option_index`` for the current question, replacing any earlier choice."""
        with self._lock:
            if self._finished:
                return
            self._require_started()
            if isinstance(option_index, bool) or not isinstance(option_index, int):
                raise ValidationError("Answer index must be an integer.")
            if not 0 <= option_index < OPTION_COUNT:
                raise ValidationError(
                    f"Answer index must be between 0 and {OPTION_COUNT - 1}."
                )
            self._answers[self._current_index] = option_index

    def advance(self) -> None:
        """Move to the next question, or finish when already on the last one."""
        with self._lock:
            if self._finished:
                return
            self._require_started()
            if self._current_index < len(self._questions) - 1:
                self._current_index += 1
            else:
                self.finish()

    def retreat(self) -> None:
        with self._lock:
            if self._finished:
                return
            self._require_started()
            if self._current_index > 0:
                self._current_index -= 1

    def tick(self) -> None:
        """Consume one second of the time limit; finishes the session at zero."""
        with self._lock:
            if self._finished or self._state is not EngineState.ACTIVE:
                return
            self._remaining_seconds = max(0, self._remaining_seconds - 1)
            if self._remaining_seconds == 0:
                logger.info("Time limit reached for user %s on quiz %s", self._identity.id, self._quiz.id)
                self.finish()

    def finish(self) -> AttemptResult:
        """Score the session and persist exactly one attempt.

        Calling this again after the session has finished returns the existing
        result without any side effect. A persistence failure does not raise: the
        result still carries the score, with ``attempt_id`` left as ``None``. Any other
        error from the store propagates, and the unsaved score stays in ``result``.
        """
        with self._lock:
            if self._finished:
                return self._result
            self._require_started()

            self._finished = True
            self._finished_at = utc_now()
            self._state = EngineState.FINISHED
            self._stop_clock()

            score = score_answers(self._questions, self._answers)
            total = len(self._questions)
            # Holds the score even if the store raises something unexpected below.
            self._result = AttemptResult(
                score=score,
                total_questions=total,
                persistence_error="Attempt was not saved.",
            )
            try:
                result = AttemptResult(
                    score=score,
                    total_questions=total,
                    attempt_id=self._persist(score, total),
                )
            except PersistenceError as exc:
                logger.warning(
                    "Score %d/%d for user %s on quiz %s was not saved: %s",
                    score,
                    total,
                    self._identity.id,
                    self._quiz.id,
                    exc,
                )
                result = AttemptResult(
                    score=score,
                    total_questions=total,
                    persistence_error=str(exc),
                )
            self._result = result
            logger.info(
                "User %s finished quiz %s with %d/%d",
                self._identity.id,
                self._quiz.id,
                score,
                total,
            )

            if self._on_finished is not None:
                self._on_finished(result)
            return result

    # --- Observable state ---

    @property
    def quiz(self) -> Quiz:
        return self._quiz

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def result(self) -> AttemptResult | None:
        return self._result

    @property
    def finished_at(self) -> datetime | None:
        return self._finished_at

    @property
    def clock(self) -> Clock | None:
        return self._clock

    def get_answers(self) -> list[int | None]:
        with self._lock:
            return list(self._answers)

    def get_questions(self) -> list[Question]:
        with self._lock:
            return list(self._questions)

    def get_current_question(self) -> Question | None:
        with self._lock:
            if not self._questions:
                return None
            return self._questions[self._current_index]

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                state=self._state,
                current_index=self._current_index,
                answers=list(self._answers),
                remaining_seconds=self._remaining_seconds,
                finished=self._finished,
                result=self._result,
            )

    # --- Helpers ---

    def _require_started(self) -> None:
        if self._state is EngineState.LOADING:
            raise RuntimeError("Session has not been started.")

    def _stop_clock(self) -> None:
        if self._clock is not None:
            self._clock.stop()

    def _persist(self, score: int, total: int) -> str:
        try:
            attempt = self._store.create_attempt(
                quiz_id=self._quiz.id,
                user_id=self._identity.id,
                score=score,
                total_questions=total,
            )
        except (DataStoreError, ValidationError) as exc:
            raise PersistenceError(str(exc)) from exc
        return attempt.id
