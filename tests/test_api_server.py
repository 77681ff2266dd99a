from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import ManualClock
from timed_quiz.core.quiz_platform import QuizPlatform
from timed_quiz.server.api_server import create_api_app

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}

QUIZ_BODY = {
    "title": "Arithmetic",
    "description": "Quick sums",
    "time_limit": 1,
    "questions": [
        {"question_text": "What is **2 + 2**?", "options": ["3", "4", "5", "22"], "correct_answer": 1},
        {"question_text": "What is 3 x 3?", "options": ["6", "9", "12", "33"], "correct_answer": 1},
        {"question_text": "", "options": ["", "", "", ""], "correct_answer": 0},
    ],
}


@pytest.fixture
def platform(store):
    return QuizPlatform(store=store, clock_factory=ManualClock)


@pytest.fixture
def client(platform):
    with TestClient(create_api_app(platform)) as test_client:
        yield test_client


@pytest.fixture
def quiz_id(client):
    response = client.post("/quizzes", json=QUIZ_BODY, headers=ALICE)
    assert response.status_code == 201
    return response.json()["id"]


def test_requests_without_identity_are_rejected(client):
    assert client.get("/quizzes").status_code == 401
    assert client.get("/quizzes", headers={"X-User-Id": "  "}).status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_openapi_describes_the_import_format(client):
    info = client.get("/openapi.json").json()["info"]

    assert info["title"] == "TimedQuiz API"
    assert "TIMELIMIT:" in info["description"]
    assert info["license"]["name"] == "MIT License"


def test_create_and_list_quizzes(client, quiz_id):
    response = client.post("/quizzes", json=QUIZ_BODY, headers=ALICE)
    assert response.json()["question_count"] == 2

    listed = client.get("/quizzes", headers=BOB).json()
    assert len(listed) == 2
    assert listed[1]["id"] == quiz_id
    assert listed[1]["created_by"] == "alice"
    assert client.get(f"/quizzes/{quiz_id}", headers=BOB).json()["time_limit"] == 1
    assert client.get("/quizzes/nope", headers=BOB).status_code == 404


def test_create_quiz_without_complete_questions(client):
    body = dict(QUIZ_BODY, questions=[QUIZ_BODY["questions"][2]])

    response = client.post("/quizzes", json=body, headers=ALICE)

    assert response.status_code == 422


def test_take_quiz_and_leave_feedback(client, quiz_id):
    started = client.post(f"/quizzes/{quiz_id}/sessions", headers=BOB)
    assert started.status_code == 201
    session = started.json()
    session_id = session["session_id"]
    assert session["state"] == "active"
    assert session["answers"] == [None, None]
    assert session["remaining_seconds"] == 60
    assert session["remaining_display"] == "1:00"
    assert "<strong>2 + 2</strong>" in session["question"]["question_html"]
    assert "correct_answer" not in session["question"]

    answered = client.post(
        f"/sessions/{session_id}/answer",
        json={"selected_option_index": 1},
        headers=BOB,
    ).json()
    assert answered["answers"] == [1, None]

    moved = client.post(f"/sessions/{session_id}/advance", headers=BOB).json()
    assert moved["current_index"] == 1
    back = client.post(f"/sessions/{session_id}/retreat", headers=BOB).json()
    assert back["current_index"] == 0
    client.post(f"/sessions/{session_id}/advance", headers=BOB)

    finished = client.post(f"/sessions/{session_id}/advance", headers=BOB).json()
    assert finished["finished"] is True
    assert finished["state"] == "finished"
    result = finished["result"]
    assert result["score"] == 1
    assert result["total_questions"] == 2
    assert result["percentage"] == 50
    assert result["persistence_error"] is None

    history = client.get("/attempts", headers=BOB).json()
    assert [a["id"] for a in history["attempts"]] == [result["attempt_id"]]
    assert history["stats"]["total_attempts"] == 1
    assert history["attempts"][0]["quiz"]["title"] == "Arithmetic"
    assert history["attempts"][0]["feedback"] is None

    feedback_url = f"/attempts/{result['attempt_id']}/feedback"
    assert client.post(feedback_url, json={"rating": 5}, headers=ALICE).status_code == 403
    assert client.post(feedback_url, json={"rating": 9}, headers=BOB).status_code == 422
    created = client.post(feedback_url, json={"rating": 5, "feedback_text": "Nice"}, headers=BOB)
    assert created.status_code == 201
    assert client.post(feedback_url, json={"rating": 4}, headers=BOB).status_code == 409

    history = client.get("/attempts", headers=BOB).json()
    assert history["attempts"][0]["feedback"] == {"rating": 5, "feedback_text": "Nice"}


def test_invalid_answer_index(client, quiz_id):
    session_id = client.post(f"/quizzes/{quiz_id}/sessions", headers=BOB).json()["session_id"]

    response = client.post(
        f"/sessions/{session_id}/answer",
        json={"selected_option_index": 4},
        headers=BOB,
    )

    assert response.status_code == 422


def test_time_expiry_is_visible_through_api(client, quiz_id):
    session_id = client.post(f"/quizzes/{quiz_id}/sessions", headers=BOB).json()["session_id"]

    ManualClock.instances[-1].advance(60)

    session = client.get(f"/sessions/{session_id}", headers=BOB).json()
    assert session["finished"] is True
    assert session["remaining_display"] == "0:00"
    assert session["result"]["score"] == 0


def test_persistence_failure_is_reported(client, store, quiz_id):
    session_id = client.post(f"/quizzes/{quiz_id}/sessions", headers=BOB).json()["session_id"]
    store.fail_create_attempt = True

    session = client.post(f"/sessions/{session_id}/finish", headers=BOB).json()

    assert session["finished"] is True
    assert session["result"]["attempt_id"] is None
    assert session["result"]["persistence_error"]
    assert client.get("/attempts", headers=BOB).json() == {"attempts": [], "stats": None}


def test_load_failure_returns_503(client, store, quiz_id):
    store.fail_fetch_questions = True

    response = client.post(f"/quizzes/{quiz_id}/sessions", headers=BOB)

    assert response.status_code == 503


def test_sessions_are_scoped_to_identity(client, quiz_id):
    session_id = client.post(f"/quizzes/{quiz_id}/sessions", headers=BOB).json()["session_id"]

    assert client.get(f"/sessions/{session_id}", headers=ALICE).status_code == 404
    assert client.delete(f"/sessions/{session_id}", headers=ALICE).status_code == 404
    assert client.delete(f"/sessions/{session_id}", headers=BOB).status_code == 204
    assert client.get(f"/sessions/{session_id}", headers=BOB).status_code == 404
    assert ManualClock.instances[-1].stopped
