"""Tests for POST /v1/progress/quiz."""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth


def _attempt(score: int, total: int = 10, lesson_id: str = "l2", **extra) -> dict:
    return {"lesson_id": lesson_id, "score": score, "total_questions": total, **extra}


def test_quiz_requires_token(client: TestClient) -> None:
    resp = client.post("/v1/progress/quiz", json=_attempt(7))
    assert resp.status_code == 401


def test_passing_quiz_completes_lesson(client: TestClient, token: str) -> None:
    resp = client.post("/v1/progress/quiz", json=_attempt(7), headers=auth(token))
    assert resp.status_code == 201
    body = resp.json()
    assert body["lesson_id"] == "l2"
    assert body["quiz_result"]["percentage"] == 70
    assert body["lesson_completed"] is True
    assert body["progress"]["course_id"] == "course-1"
    assert body["progress"]["completed_lessons"] == ["l2"]
    assert body["progress"]["total_progress"] == 33


def test_failing_quiz_records_without_completing(client: TestClient, token: str) -> None:
    resp = client.post(
        "/v1/progress/quiz", json=_attempt(69, total=100), headers=auth(token)
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["quiz_result"]["percentage"] == 69
    assert body["lesson_completed"] is False
    assert body["progress"]["completed_lessons"] == []


def test_percentage_is_derived_not_trusted(client: TestClient, token: str) -> None:
    resp = client.post(
        "/v1/progress/quiz",
        json=_attempt(1, percentage=100),
        headers=auth(token),
    )
    assert resp.json()["quiz_result"]["percentage"] == 10
    assert resp.json()["lesson_completed"] is False


def test_answers_echoed_back(client: TestClient, token: str) -> None:
    answers = [
        {"question_id": "q1", "selected_option": "a", "is_correct": True},
        {"question_id": "q2", "selected_option": "d", "is_correct": False},
    ]
    resp = client.post(
        "/v1/progress/quiz",
        json=_attempt(1, total=2, answers=answers),
        headers=auth(token),
    )
    assert resp.json()["quiz_result"]["answers"] == answers
    assert resp.json()["quiz_result"]["percentage"] == 50


def test_retake_after_pass(client: TestClient, token: str) -> None:
    client.post("/v1/progress/quiz", json=_attempt(10), headers=auth(token))
    resp = client.post("/v1/progress/quiz", json=_attempt(2), headers=auth(token))
    body = resp.json()
    assert body["lesson_completed"] is False
    assert body["progress"]["completed_lessons"] == ["l2"]


def test_quiz_unknown_lesson_is_404(client: TestClient, token: str) -> None:
    resp = client.post(
        "/v1/progress/quiz", json=_attempt(5, lesson_id="nope"), headers=auth(token)
    )
    assert resp.status_code == 404


def test_quiz_score_above_total_is_422(client: TestClient, token: str) -> None:
    resp = client.post("/v1/progress/quiz", json=_attempt(11), headers=auth(token))
    assert resp.status_code == 422


def test_quiz_zero_questions_is_422(client: TestClient, token: str) -> None:
    resp = client.post("/v1/progress/quiz", json=_attempt(0, total=0), headers=auth(token))
    assert resp.status_code == 422


def test_quiz_negative_score_is_422(client: TestClient, token: str) -> None:
    resp = client.post("/v1/progress/quiz", json=_attempt(-1), headers=auth(token))
    assert resp.status_code == 422
