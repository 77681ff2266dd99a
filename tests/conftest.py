from __future__ import annotations

from typing import Callable

import pytest

from timed_quiz.core.errors import DataStoreError
from timed_quiz.core.models import Identity, QuestionDraft, Quiz
from timed_quiz.core.services.data_store import InMemoryDataStore


class ManualClock:
    """Clock double driven by the test instead of a thread."""

    instances: list["ManualClock"] = []

    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.started = False
        self.stopped = False
        ManualClock.instances.append(self)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def is_running(self) -> bool:
        return self.started and not self.stopped

    def advance(self, seconds: int) -> None:
        for _ in range(seconds):
            if not self.is_running():
                return
            self.callback()


class FlakyStore(InMemoryDataStore):
    """In-memory store whose reads or writes can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_fetch_questions = False
        self.fail_create_attempt = False
        self.fail_create_questions = False
        self.create_attempt_error: Exception | None = None
        self.create_attempt_calls = 0

    def fetch_questions(self, quiz_id):
        if self.fail_fetch_questions:
            raise DataStoreError("connection reset")
        return super().fetch_questions(quiz_id)

    def create_questions(self, quiz_id, drafts):
        if self.fail_create_questions:
            raise DataStoreError("batch insert timed out")
        return super().create_questions(quiz_id, drafts)

    def create_attempt(self, quiz_id, user_id, score, total_questions):
        self.create_attempt_calls += 1
        if self.fail_create_attempt:
            raise DataStoreError("insert rejected")
        if self.create_attempt_error is not None:
            raise self.create_attempt_error
        return super().create_attempt(quiz_id, user_id, score, total_questions)


def make_drafts(correct_answers: list[int]) -> list[QuestionDraft]:
    return [
        QuestionDraft(
            question_text=f"Question {i + 1}",
            options=["Alpha", "Beta", "Gamma", "Delta"],
            correct_answer=correct,
        )
        for i, correct in enumerate(correct_answers)
    ]


@pytest.fixture(autouse=True)
def reset_manual_clocks():
    ManualClock.instances.clear()
    yield
    ManualClock.instances.clear()


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def identity() -> Identity:
    return Identity(id="user-1")


@pytest.fixture
def make_quiz(store: FlakyStore, identity: Identity) -> Callable[..., Quiz]:
    def factory(correct_answers: list[int], time_limit_minutes: int = 1) -> Quiz:
        quiz = store.create_quiz(
            title="Sample quiz",
            description=None,
            time_limit_minutes=time_limit_minutes,
            created_by=identity.id,
        )
        store.create_questions(quiz.id, make_drafts(correct_answers))
        return quiz

    return factory
