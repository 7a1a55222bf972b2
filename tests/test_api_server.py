from __future__ import annotations

import random

from fastapi.testclient import TestClient
import pytest

from app import api_server
from app.api_server import app, get_service
from discovery_assistant.service import DiscoveryAssistantService


@pytest.fixture
def client(config, seeded_db):
    service = DiscoveryAssistantService(config=config, db=seeded_db, rng=random.Random(4))
    app.dependency_overrides[get_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        service.close()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["stats"]["product_count"] == 35


def test_search_and_track_flow(client):
    assert client.put("/api/settings/discovery", json={"discovery_percentage": 10}).status_code == 200

    response = client.post("/api/search", json={"query": "lamp", "top_k": 20})
    assert response.status_code == 200
    payload = response.json()
    assert payload["composition"] == {"personalized": 18, "inspiration": 2}

    session_id = payload["session"]["session_id"]
    inspiration = next(row for row in payload["results"] if row["display_type"] == "inspiration")
    tracked = client.post(
        "/api/interactions",
        json={"session_id": session_id, "product_id": inspiration["product"]["id"], "kind": "click"},
    )
    assert tracked.status_code == 200
    assert tracked.json()["source"] == "discovery"

    assert client.get(f"/api/sessions/{session_id}").status_code == 200


def test_error_mapping(client):
    assert client.post("/api/search", json={"query": ""}).status_code == 400
    assert client.put("/api/settings/discovery", json={"discovery_percentage": 20}).status_code == 400
    assert client.get("/api/sessions/missing").status_code == 404
    assert (
        client.post("/api/interactions", json={"session_id": "missing", "product_id": "x", "kind": "view"}).status_code
        == 404
    )


def test_discovery_settings_defaults(client):
    body = client.get("/api/settings/discovery").json()
    assert body["discovery_percentage"] == 0
    assert body["title"] == "Discovery Off"


class _StubService:
    closed: list["_StubService"] = []

    def __init__(self, root_dir=None) -> None:
        self.root_dir = root_dir

    def stats(self) -> dict:
        return {}

    def close(self) -> None:
        _StubService.closed.append(self)


def test_shutdown_closes_cached_service(monkeypatch):
    _StubService.closed = []
    monkeypatch.setattr(api_server, "DiscoveryAssistantService", _StubService)
    get_service.cache_clear()

    with TestClient(app) as client:
        assert client.get("/api/health").status_code == 200
        built = get_service()

    assert _StubService.closed == [built]
    assert get_service.cache_info().currsize == 0


def test_shutdown_without_requests_builds_nothing(monkeypatch):
    _StubService.closed = []
    monkeypatch.setattr(api_server, "DiscoveryAssistantService", _StubService)
    get_service.cache_clear()

    with TestClient(app):
        pass

    assert _StubService.closed == []
    assert get_service.cache_info().currsize == 0
