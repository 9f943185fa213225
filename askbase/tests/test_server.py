"""Tests for the FastAPI endpoints."""

import pytest
from fastapi.testclient import TestClient

import askbase.server.app as app_module
from askbase.resolver.pipeline import AnswerResolver

from conftest import FakeServices


@pytest.fixture
def services():
    return FakeServices(vectors={"what are the school fees": [1.0, 0.0, 0.0]})


@pytest.fixture
def client(school_store, services):
    app_module.configure(AnswerResolver(school_store, services))
    # No context manager: lifespan startup stays out of the way
    yield TestClient(app_module.app)
    app_module.resolver = None
    app_module.sessions = None


class TestChat:
    def test_answer(self, client):
        response = client.post("/chat", json={"question": "what are the school fees"})

        assert response.status_code == 200
        assert response.json() == {"answer": "Tuition is 40,000 per year.", "via": "semantic"}

    def test_pano_routing(self, client, services):
        response = client.post("/chat", json={
            "question": "take me to the main gate",
            "panoNames": ["Main Gate"],
            "projectNames": ["Solar Car"],
        })

        assert response.json() == {"intent": "pano", "target": "Main Gate"}
        assert services.embed_calls == []

    def test_missing_question(self, client):
        response = client.post("/chat", json={"panoNames": []})
        assert response.status_code == 200
        assert response.json() == {"answer": "question is required"}

    def test_non_string_question(self, client):
        response = client.post("/chat", json={"question": 42})
        assert response.json() == {"answer": "question is required"}

    def test_no_body(self, client):
        response = client.post("/chat")
        assert response.status_code == 200
        assert response.json() == {"answer": "question is required"}

    def test_follow_up_uses_session(self, client, services):
        client.post("/chat", json={"question": "what are the school fees", "sessionId": "s1"})
        client.post("/chat", json={"question": "fees", "sessionId": "s1"})

        assert services.spell_calls[-1] == "what are the school fees fees"

    def test_sessions_are_isolated(self, client, services):
        client.post("/chat", json={"question": "what are the school fees", "sessionId": "s1"})
        client.post("/chat", json={"question": "fees", "sessionId": "s2"})

        assert services.spell_calls[-1] == "fees"

    def test_unconfigured_returns_503(self):
        app_module.resolver = None
        response = TestClient(app_module.app).post("/chat", json={"question": "fees"})
        assert response.status_code == 503


class TestHealth:
    def test_health_reports_components(self, client):
        client.post("/chat", json={"question": "what are the school fees", "sessionId": "s1"})

        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["initialized"] is True
        assert data["knowledge_entries"] == 3
        assert data["llm_available"] is True
        assert data["active_sessions"] == 1
        assert data["embedding_cache"]["size"] == 1

    def test_health_before_startup(self):
        app_module.resolver = None
        app_module.sessions = None

        data = TestClient(app_module.app).get("/health").json()

        assert data["status"] == "starting"
        assert data["knowledge_entries"] == 0


class TestAdmin:
    def test_reload(self, client):
        response = client.post("/admin/reload")
        assert response.json() == {"status": "reloaded", "knowledge_entries": 3}

    def test_end_session(self, client):
        client.post("/chat", json={"question": "fees", "sessionId": "s1"})

        first = client.delete("/sessions/s1")
        second = client.delete("/sessions/s1")

        assert first.json() == {"status": "ended", "session_id": "s1"}
        assert second.status_code == 404
