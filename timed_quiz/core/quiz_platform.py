"""Business logic shared by the web host and the command line entry point."""

from __future__ import annotations

import logging
from datetime import datetime
from threading import Lock

from timed_quiz.core.errors import DataStoreError, PermissionDeniedError, ValidationError
from timed_quiz.core.models import (
    AttemptRecord,
    AttemptResult,
    Feedback,
    Identity,
    Question,
    Quiz,
    QuizDraft,
)
from timed_quiz.core.services.attempt_engine import QuizAttemptEngine
from timed_quiz.core.services.attempt_history import AttemptStats, summarize_attempts
from timed_quiz.core.services.countdown_clock import ClockFactory, CountdownClock
from timed_quiz.core.services.data_store import DataStore, InMemoryDataStore
from timed_quiz.core.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class QuizPlatform:
    """Facade for quiz services: DataStore, SessionRegistry and attempt engines."""

    def __init__(
        self,
        store: DataStore | None = None,
        clock_factory: ClockFactory = CountdownClock,
    ) -> None:
        self._lock = Lock()
        self._store = store if store is not None else InMemoryDataStore()
        self._clock_factory = clock_factory
        self._sessions = SessionRegistry()

    @property
    def store(self) -> DataStore:
        return self._store

    # --- Quiz creation & listing ---

    def create_quiz(self, identity: Identity, draft: QuizDraft) -> tuple[Quiz, list[Question]]:
        """Store a quiz and its complete questions; incomplete drafts are dropped."""
        complete = [question for question in draft.questions if question.is_complete()]
        if not complete:
            raise ValidationError("Please add at least one complete question.")
        dropped = len(draft.questions) - len(complete)
        if dropped:
            logger.info("Dropping %d incomplete question(s) from '%s'", dropped, draft.title)

        quiz = self._store.create_quiz(
            title=draft.title,
            description=draft.description,
            time_limit_minutes=draft.time_limit_minutes,
            created_by=identity.id,
        )
        try:
            questions = self._store.create_questions(quiz.id, complete)
        except (DataStoreError, ValidationError):
            logger.warning("Questions for quiz %s were not saved; removing the quiz", quiz.id)
            self._store.delete_quiz(quiz.id)
            raise
        return quiz, questions

    def list_quizzes(self) -> list[Quiz]:
        return self._store.fetch_quizzes()

    def get_quiz(self, quiz_id: str) -> Quiz:
        return self._store.fetch_quiz(quiz_id)

    # --- Sessions ---

    def start_session(self, identity: Identity, quiz_id: str) -> tuple[str, QuizAttemptEngine]:
        """Create and start an engine for ``quiz_id``. ``LoadError`` propagates."""
        quiz = self._store.fetch_quiz(quiz_id)
        engine = QuizAttemptEngine(
            quiz=quiz,
            identity=identity,
            store=self._store,
            clock_factory=self._clock_factory,
        )
        engine.start()
        with self._lock:
            self._sessions.prune_finished()
            session_id = self._sessions.register(engine)
        logger.info("Session %s started for user %s", session_id, identity.id)
        return session_id, engine

    def get_session(self, identity: Identity, session_id: str) -> QuizAttemptEngine:
        with self._lock:
            return self._sessions.get(session_id, identity)

    def finish_session(self, identity: Identity, session_id: str) -> AttemptResult:
        return self.get_session(identity, session_id).finish()

    def abandon_session(self, identity: Identity, session_id: str) -> None:
        with self._lock:
            self._sessions.discard(session_id, identity)

    def get_active_session_ids(self, identity: Identity) -> list[str]:
        with self._lock:
            return self._sessions.get_session_ids(identity)

    def prune_finished_sessions(self, now: datetime | None = None) -> int:
        with self._lock:
            return self._sessions.prune_finished(now)

    def session_count(self) -> int:
        """Number of sessions held, finished ones included until they are pruned."""
        with self._lock:
            return self._sessions.count()

    def shutdown(self) -> None:
        with self._lock:
            self._sessions.clear()

    # --- History & feedback ---

    def get_attempt_history(self, identity: Identity) -> tuple[list[AttemptRecord], AttemptStats | None]:
        records = self._store.fetch_attempts(identity.id)
        return records, summarize_attempts(records)

    def submit_feedback(
        self,
        identity: Identity,
        attempt_id: str,
        rating: int | None,
        feedback_text: str | None,
    ) -> Feedback:
        """Attach feedback to one of the caller's attempts."""
        attempt = self._store.fetch_attempt(attempt_id)
        if attempt.user_id != identity.id:
            raise PermissionDeniedError("Feedback can only be left on your own attempts.")
        if rating is None and not (feedback_text or "").strip():
            raise ValidationError("Provide a rating or a comment.")
        return self._store.create_feedback(
            quiz_id=attempt.quiz_id,
            user_id=identity.id,
            attempt_id=attempt.id,
            rating=rating,
            feedback_text=feedback_text,
        )
