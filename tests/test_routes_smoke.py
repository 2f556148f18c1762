"""Smoke tests for API routes."""

from unittest.mock import patch

import pytest
from conftest import make_question
from fastapi import FastAPI
from fastapi.testclient import TestClient

from adaptive_practice.api.routes import router
from adaptive_practice.models.skills import SKILL_QUESTION_TYPES, CEFRLevel, QuestionType

HEADERS = {"X-User-Id": "learner-1"}


@pytest.fixture
def client(service):
    app = FastAPI()
    app.include_router(router)
    with patch("adaptive_practice.api.routes.get_service", return_value=service):
        with TestClient(app) as c:
            yield c


@pytest.fixture
def stocked(service):
    service.inventory.catalog.add_many(
        [make_question(qt) for qtypes in SKILL_QUESTION_TYPES.values() for qt in qtypes]
    )
    return service


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestIdentity:
    def test_missing_header_is_401(self, client):
        response = client.post("/api/practice-session")
        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "identity_error"

    def test_malformed_header_is_401(self, client):
        response = client.get("/api/usage", headers={"X-User-Id": "../etc"})
        assert response.status_code == 401


class TestPracticeSession:
    def test_compose_returns_session(self, client, stocked):
        response = client.post("/api/practice-session", headers=HEADERS)
        assert response.status_code == 200
        data = response.json()
        assert data["session_id"].startswith("practice_")
        assert len(data["questions"]) == 4
        assert data["remaining"] == 4

    def test_empty_inventory_is_404(self, client):
        response = client.post("/api/practice-session", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "no_content"

    def test_limit_reached_is_402(self, client, stocked):
        for _ in range(5):
            assert client.post("/api/practice-session", headers=HEADERS).status_code == 200
        response = client.post("/api/practice-session", headers=HEADERS)
        assert response.status_code == 402
        assert response.json()["detail"]["error"] == "upgrade_required"


class TestLevels:
    def test_get_level_creates_default(self, client):
        response = client.get("/api/levels/speaking/listen_then_speak", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["cefr_level"] == "A1"

    def test_mismatched_pair_is_400(self, client):
        response = client.get("/api/levels/writing/listen_then_speak", headers=HEADERS)
        assert response.status_code == 400

    def test_outcome_promotes(self, client):
        for _ in range(3):
            response = client.post(
                "/api/levels/speaking/listen_then_speak/outcome",
                json={"outcome": "correct"},
                headers=HEADERS,
            )
        assert response.json()["cefr_level"] == "A2"

    def test_outcome_from_score(self, client):
        response = client.post(
            "/api/levels/reading/read_and_select/outcome", json={"score": 40}, headers=HEADERS
        )
        assert response.status_code == 200
        assert response.json()["correct_streak"] == 0

    def test_outcome_requires_body(self, client):
        response = client.post(
            "/api/levels/reading/read_and_select/outcome", json={}, headers=HEADERS
        )
        assert response.status_code == 400

    def test_all_levels_grouped(self, client):
        client.get("/api/levels/speaking/read_then_speak", headers=HEADERS)
        data = client.get("/api/levels", headers=HEADERS).json()
        assert set(data) == {"speaking", "writing", "listening", "reading"}
        assert data["speaking"][0]["question_type"] == "read_then_speak"
        assert data["writing"] == []


class TestUsage:
    def test_free_usage(self, client):
        data = client.get("/api/usage", headers=HEADERS).json()
        assert data["allowed"] is True
        assert data["remaining"] == 5

    def test_premium_usage_is_unlimited(self, client, service):
        service.subscriptions.set_status("learner-1", "active")
        data = client.get("/api/usage", headers=HEADERS).json()
        assert data["remaining"] == "unlimited"


class TestAttempts:
    def _submit(self, client, **extra):
        body = {
            "id": "att-1",
            "session_id": "practice_x",
            "question_id": "q1",
            "question_type": "listen_then_speak",
        }
        body.update(extra)
        return client.post("/api/attempts", json=body, headers=HEADERS)

    def test_submit_is_idempotent(self, client):
        first = self._submit(client, score=90).json()
        second = self._submit(client, score=90).json()
        assert first["created"] is True
        assert first["level"]["correct_streak"] == 1
        assert second["created"] is False
        assert second["level"] is None

    def test_grade_advances_once(self, client):
        self._submit(client)
        first = client.post("/api/attempts/att-1/grade", json={"score": 95}, headers=HEADERS)
        second = client.post("/api/attempts/att-1/grade", json={"score": 95}, headers=HEADERS)
        assert first.json()["level"]["correct_streak"] == 1
        assert second.json()["level"] is None

    def test_grade_unknown_attempt_is_404(self, client):
        response = client.post("/api/attempts/nope/grade", json={"score": 50}, headers=HEADERS)
        assert response.status_code == 404

    def test_grade_score_out_of_range(self, client):
        self._submit(client)
        response = client.post("/api/attempts/att-1/grade", json={"score": 150}, headers=HEADERS)
        assert response.status_code == 422


class TestInventory:
    def test_snapshot(self, client, stocked):
        data = client.get("/api/inventory").json()
        assert len(data["inventory"]) == len(QuestionType) * len(CEFRLevel)
        for entry in data["inventory"]:
            expected = 1 if entry["cefr_level"] == CEFRLevel.A1.value else 0
            assert entry["total"] == entry["available"] == expected

    def test_generate_without_generator_reports_error(self, client):
        response = client.post(
            "/api/inventory/generate",
            json={
                "skill_area": "speaking",
                "question_type": "listen_then_speak",
                "cefr_level": "B1",
                "count": 3,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["generated"] == 0
        assert data["errors"] == ["no content generator configured"]

    def test_generate_bad_level_is_400(self, client):
        response = client.post(
            "/api/inventory/generate",
            json={
                "skill_area": "speaking",
                "question_type": "listen_then_speak",
                "cefr_level": "Z9",
            },
        )
        assert response.status_code == 400
