"""Service keeping track of the attempt engines running in the web host."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import uuid4

from timed_quiz.constants.quiz_constants import FINISHED_SESSION_TTL_SECONDS
from timed_quiz.core.errors import NotFoundError
from timed_quiz.core.models import Identity, utc_now
from timed_quiz.core.services.attempt_engine import QuizAttemptEngine

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps session ids to the engines owned by each identity.

    Finished engines stay readable so the host can show their result, and are
    dropped by ``prune_finished`` once they have been finished for longer than
    the retention period.
    """

    def __init__(self, finished_ttl_seconds: int = FINISHED_SESSION_TTL_SECONDS) -> None:
        self._sessions: dict[str, QuizAttemptEngine] = {}
        self._finished_ttl = timedelta(seconds=finished_ttl_seconds)

    def register(self, engine: QuizAttemptEngine) -> str:
        """Store a started engine and return its new session id."""
        session_id = uuid4().hex
        self._sessions[session_id] = engine
        return session_id

    def get(self, session_id: str, identity: Identity) -> QuizAttemptEngine:
        """Return the engine if it exists and belongs to ``identity``."""
        engine = self._sessions.get(session_id)
        if engine is None or engine.identity != identity:
            raise NotFoundError(f"Session {session_id} not found")
        return engine

    def discard(self, session_id: str, identity: Identity) -> QuizAttemptEngine:
        """Remove a session and release its clock."""
        engine = self.get(session_id, identity)
        del self._sessions[session_id]
        engine.close()
        logger.info("Discarded session %s for user %s", session_id, identity.id)
        return engine

    def prune_finished(self, now: datetime | None = None) -> int:
        """Drop engines finished longer ago than the retention period."""
        cutoff = (now or utc_now()) - self._finished_ttl
        expired = [
            sid
            for sid, engine in self._sessions.items()
            if engine.finished_at is not None and engine.finished_at <= cutoff
        ]
        for sid in expired:
            self._sessions.pop(sid).close()
        if expired:
            logger.info("Pruned %d finished session(s)", len(expired))
        return len(expired)

    def get_session_ids(self, identity: Identity) -> list[str]:
        """Ids of the identity's sessions that are still running."""
        return [
            sid
            for sid, engine in self._sessions.items()
            if engine.identity == identity and not engine.finished
        ]

    def count(self) -> int:
        return len(self._sessions)

    def clear(self) -> None:
        """Close every session; used on shutdown."""
        for engine in self._sessions.values():
            engine.close()
        self._sessions.clear()
