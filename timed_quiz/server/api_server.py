"""FastAPI server exposing quiz creation, timed attempts, history and feedback."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field
import uvicorn

from timed_quiz.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION, HELP_TEXT
from timed_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT, USER_ID_HEADER
from timed_quiz.constants.quiz_constants import (
    DEFAULT_TIME_LIMIT_MINUTES,
    MAX_RATING,
    MIN_RATING,
)
from timed_quiz.core.errors import (
    ConflictError,
    LoadError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from timed_quiz.core.markdown_math_renderer import renderer
from timed_quiz.core.models import (
    AttemptRecord,
    AttemptResult,
    Identity,
    Question,
    QuestionDraft,
    Quiz,
    QuizDraft,
)
from timed_quiz.core.quiz_platform import QuizPlatform
from timed_quiz.core.services.attempt_engine import QuizAttemptEngine, format_remaining_time
from timed_quiz.core.services.attempt_history import AttemptStats, performance_message


class QuestionPayload(BaseModel):
    """Payload schema for one question of a new quiz."""

    question_text: str = ""
    options: list[str] = Field(default_factory=lambda: ["", "", "", ""])
    correct_answer: int = 0


class QuizPayload(BaseModel):
    """Payload schema for the quiz creation flow."""

    title: str
    description: str | None = None
    time_limit: int = DEFAULT_TIME_LIMIT_MINUTES
    questions: list[QuestionPayload]


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers."""

    selected_option_index: int


class FeedbackPayload(BaseModel):
    """Payload schema for post-attempt feedback."""

    rating: int | None = Field(default=None, ge=MIN_RATING, le=MAX_RATING)
    feedback_text: str | None = None


def _get_platform_dependency(platform: QuizPlatform):
    def dependency() -> QuizPlatform:
        return platform

    return dependency


def get_identity(user_id: str | None = Header(default=None, alias=USER_ID_HEADER)) -> Identity:
    """Resolve the caller from the header set by the authentication proxy."""
    if user_id is None or not user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required.")
    return Identity(id=user_id.strip())


def _serialize_quiz(quiz: Quiz) -> dict[str, object]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "time_limit": quiz.time_limit_minutes,
        "created_by": quiz.created_by,
        "created_at": quiz.created_at.isoformat(),
    }


def _serialize_question(question: Question) -> dict[str, object]:
    # The correct answer is never sent while a session is running.
    return {
        "id": question.id,
        "question_html": renderer.render_fragment(question.question_text),
        "options": list(question.options),
    }


def _serialize_result(result: AttemptResult | None) -> dict[str, object] | None:
    if result is None:
        return None
    return {
        "score": result.score,
        "total_questions": result.total_questions,
        "attempt_id": result.attempt_id,
        "percentage": result.percentage,
        "message": performance_message(result.percentage),
        "persistence_error": result.persistence_error,
    }


def _serialize_session(session_id: str, engine: QuizAttemptEngine) -> dict[str, object]:
    snapshot = engine.snapshot()
    question = engine.get_current_question()
    return {
        "session_id": session_id,
        "quiz": _serialize_quiz(engine.quiz),
        "state": snapshot.state.value,
        "current_index": snapshot.current_index,
        "total_questions": snapshot.total_questions,
        "answers": snapshot.answers,
        "remaining_seconds": snapshot.remaining_seconds,
        "remaining_display": format_remaining_time(snapshot.remaining_seconds),
        "finished": snapshot.finished,
        "question": _serialize_question(question) if question is not None else None,
        "result": _serialize_result(snapshot.result),
    }


def _serialize_record(record: AttemptRecord) -> dict[str, object]:
    attempt = record.attempt
    feedback = record.feedback
    return {
        "id": attempt.id,
        "score": attempt.score,
        "total_questions": attempt.total_questions,
        "percentage": attempt.percentage,
        "completed_at": attempt.completed_at.isoformat(),
        "quiz": _serialize_quiz(record.quiz),
        "feedback": None
        if feedback is None
        else {"rating": feedback.rating, "feedback_text": feedback.feedback_text},
    }


def _serialize_stats(stats: AttemptStats | None) -> dict[str, object] | None:
    if stats is None:
        return None
    return {
        "total_attempts": stats.total_attempts,
        "average_percentage": stats.average_percentage,
        "best_percentage": stats.best_percentage,
        "recent_average": stats.recent_average,
    }


def create_api_app(platform: QuizPlatform) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz platform."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        platform.shutdown()

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=f"{APP_ABOUT_TEXT}\n\n{HELP_TEXT}",
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    platform_dep = _get_platform_dependency(platform)

    def _load_session(
        session_id: str,
        identity: Identity,
        manager: QuizPlatform,
    ) -> QuizAttemptEngine:
        try:
            return manager.get_session(identity, session_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.get("/health")
    def health() -> dict[str, object]:
        return {"status": "ok"}

    @app.get("/quizzes")
    def list_quizzes(
        _identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> list[dict[str, object]]:
        return [_serialize_quiz(quiz) for quiz in manager.list_quizzes()]

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: QuizPayload,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        draft = QuizDraft(
            title=payload.title,
            description=payload.description,
            time_limit_minutes=payload.time_limit,
            questions=[
                QuestionDraft(
                    question_text=q.question_text,
                    options=list(q.options),
                    correct_answer=q.correct_answer,
                )
                for q in payload.questions
            ],
        )
        try:
            quiz, questions = manager.create_quiz(identity, draft)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        body = _serialize_quiz(quiz)
        body["question_count"] = len(questions)
        return body

    @app.get("/quizzes/{quiz_id}")
    def get_quiz(
        quiz_id: str,
        _identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        try:
            return _serialize_quiz(manager.get_quiz(quiz_id))
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/quizzes/{quiz_id}/sessions", status_code=201)
    def start_session(
        quiz_id: str,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        try:
            session_id, engine = manager.start_session(identity, quiz_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except LoadError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return _serialize_session(session_id, engine)

    @app.get("/sessions/{session_id}")
    def get_session(
        session_id: str,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        engine = _load_session(session_id, identity, manager)
        return _serialize_session(session_id, engine)

    @app.post("/sessions/{session_id}/answer")
    def submit_answer(
        session_id: str,
        payload: AnswerPayload,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        engine = _load_session(session_id, identity, manager)
        try:
            engine.select_answer(payload.selected_option_index)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _serialize_session(session_id, engine)

    @app.post("/sessions/{session_id}/advance")
    def advance(
        session_id: str,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        engine = _load_session(session_id, identity, manager)
        engine.advance()
        return _serialize_session(session_id, engine)

    @app.post("/sessions/{session_id}/retreat")
    def retreat(
        session_id: str,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        engine = _load_session(session_id, identity, manager)
        engine.retreat()
        return _serialize_session(session_id, engine)

    @app.post("/sessions/{session_id}/finish")
    def finish(
        session_id: str,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        engine = _load_session(session_id, identity, manager)
        engine.finish()
        return _serialize_session(session_id, engine)

    @app.delete("/sessions/{session_id}", status_code=204)
    def abandon_session(
        session_id: str,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> None:
        try:
            manager.abandon_session(identity, session_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.get("/attempts")
    def list_attempts(
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        records, stats = manager.get_attempt_history(identity)
        return {
            "attempts": [_serialize_record(record) for record in records],
            "stats": _serialize_stats(stats),
        }

    @app.post("/attempts/{attempt_id}/feedback", status_code=201)
    def submit_feedback(
        attempt_id: str,
        payload: FeedbackPayload,
        identity: Identity = Depends(get_identity),
        manager: QuizPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        try:
            feedback = manager.submit_feedback(
                identity,
                attempt_id,
                rating=payload.rating,
                feedback_text=payload.feedback_text,
            )
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except PermissionDeniedError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except ConflictError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        return {
            "id": feedback.id,
            "attempt_id": feedback.attempt_id,
            "quiz_id": feedback.quiz_id,
            "rating": feedback.rating,
            "feedback_text": feedback.feedback_text,
            "created_at": feedback.created_at.isoformat(),
        }

    return app


def run_api_server(
    platform: QuizPlatform,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API in the foreground until interrupted."""
    app = create_api_app(platform)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    server.run()
