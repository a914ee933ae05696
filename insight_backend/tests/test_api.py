"""
Pytest test module for the insight HTTP endpoints.

Runs the FastAPI app through TestClient without its lifespan: each test puts an
InsightService built from the conftest fixtures on app.state, and patches the
subject-data fetchers where an endpoint reads stored data.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from insight_backend.core.config import Settings
from insight_backend.core.database import DatabaseNotConfiguredError
from insight_backend.core.dependencies import get_settings_dependency
from insight_backend.main import app
from insight_backend.services.prompt_builder import TEAM_SYSTEM_INSTRUCTION
from insight_backend.services.subject_data import SubjectNotFound


@pytest.fixture
def service(make_service, fake_client):
    service = make_service(fake_client)
    app.state.insight_service = service
    yield service
    del app.state.insight_service


@pytest.fixture
def client():
    return TestClient(app)


def _body(dataset, **subject):
    return {
        "subject": subject or {"athleteId": "athlete-1"},
        "dataset": [point.model_dump(mode="json") for point in dataset],
    }


class TestGenerateEndpoint:

    def test_generates_model_insights(self, client, service, sample_dataset):
        response = client.post("/insights/generate", json=_body(sample_dataset))

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "model"
        assert data["superseded"] is False
        assert len(data["insights"]) == 3
        assert data["insights"][0]["supportingData"]["metrics"] == ["Sleep Quality"]

    def test_repeat_request_is_served_from_cache(self, client, service, fake_client, sample_dataset):
        client.post("/insights/generate", json=_body(sample_dataset))
        response = client.post("/insights/generate", json=_body(sample_dataset))

        assert response.json()["source"] == "cache"
        assert len(fake_client.calls) == 1

    def test_rate_limited_request_is_still_successful(self, client, service, clock, sample_dataset):
        client.post("/insights/generate", json=_body(sample_dataset))
        clock.advance(1)
        response = client.post(
            "/insights/generate",
            json=_body(sample_dataset, athleteId="athlete-2"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "rate_limited"
        assert data["message"] == "Please wait 4 seconds between requests."
        assert len(data["insights"]) == 3

    def test_subject_without_identifier_is_rejected(self, client, service, sample_dataset):
        body = _body(sample_dataset)
        body["subject"] = {}

        assert client.post("/insights/generate", json=body).status_code == 422

    def test_service_not_ready(self, client, sample_dataset):
        response = client.post("/insights/generate", json=_body(sample_dataset))

        assert response.status_code == 503


class TestStoredSubjectEndpoints:

    def test_athlete_endpoint_uses_stored_dataset(self, client, service, sample_dataset):
        fetch = AsyncMock(return_value=sample_dataset)
        with patch('insight_backend.api.insights.fetch_athlete_dataset', new=fetch):
            response = client.post("/insights/athletes/athlete-1", params={"model": "gpt-4"})

        assert response.status_code == 200
        assert response.json()["model"] == "gpt-4"
        fetch.assert_awaited_once_with("athlete-1", lookback_days=30)

    def test_lookback_window_comes_from_settings(self, client, service, sample_dataset):
        app.dependency_overrides[get_settings_dependency] = lambda: Settings(insights_lookback_days=7)
        fetch = AsyncMock(return_value=sample_dataset)
        try:
            with patch('insight_backend.api.insights.fetch_team_dataset', new=fetch):
                response = client.post("/insights/teams/manager-9")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        fetch.assert_awaited_once_with("manager-9", lookback_days=7)

    def test_team_endpoint_uses_team_prompt(self, client, service, fake_client, sample_dataset):
        with patch('insight_backend.api.insights.fetch_team_dataset', new=AsyncMock(return_value=sample_dataset)):
            response = client.post("/insights/teams/manager-9")

        assert response.status_code == 200
        prompt, _ = fake_client.calls[0]
        assert prompt.system == TEAM_SYSTEM_INSTRUCTION

    def test_unknown_athlete_is_404(self, client, service):
        fetch = AsyncMock(side_effect=SubjectNotFound("Athlete missing not found"))
        with patch('insight_backend.api.insights.fetch_athlete_dataset', new=fetch):
            response = client.post("/insights/athletes/missing")

        assert response.status_code == 404
        assert response.json()["detail"] == "Athlete missing not found"

    def test_database_failure_is_503(self, client, service):
        fetch = AsyncMock(side_effect=DatabaseNotConfiguredError("DATABASE_URL is not set"))
        with patch('insight_backend.api.insights.fetch_team_dataset', new=fetch):
            response = client.post("/insights/teams/manager-9")

        assert response.status_code == 503

    def test_empty_stored_dataset_returns_fallback(self, client, service, fake_client):
        with patch('insight_backend.api.insights.fetch_athlete_dataset', new=AsyncMock(return_value=[])):
            response = client.post("/insights/athletes/athlete-1")

        assert response.json()["source"] == "fallback"
        assert fake_client.calls == []


class TestOperationsEndpoints:

    def test_status(self, client, service, sample_dataset):
        client.post("/insights/generate", json=_body(sample_dataset))

        data = client.get("/insights/status").json()

        assert data["cacheEntries"] == 1
        assert data["requestsInWindow"] == 1
        assert data["inFlight"] == {}
        assert data["minRequestIntervalSeconds"] == 5.0

    def test_clear_cache(self, client, service, sample_dataset):
        client.post("/insights/generate", json=_body(sample_dataset))

        response = client.delete("/insights/cache")

        assert response.json() == {"cleared": 1}
        assert len(service.cache) == 0

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
