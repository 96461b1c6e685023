"""
Tests for the notion cache API.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeRemote, reference_payload, sync_payload

from notion_cache.api.app import app
from notion_cache.api.dependencies import get_auth_client, get_registry, get_store
from notion_cache.entities import Session
from notion_cache.errors import ErrorCode, RemoteCallError
from notion_cache.repositories import InMemoryCacheRepository
from notion_cache.services import SessionRegistry

AUTH = {"Authorization": "Bearer good-token"}


class FakeAuth:
    async def resolve(self, access_token):
        if access_token == "good-token":
            return Session(user_id="user-1", access_token=access_token)
        return None


@pytest.fixture
def remote():
    return FakeRemote(
        {
            "get-notion-secrets": {"configured": True},
            "sync-notion-data": sync_payload(),
            "get-all-reference-data": reference_payload(),
            "get-all-clients": [{"id": "c1", "name": "Ada"}],
        }
    )


@pytest.fixture
def api_store():
    return InMemoryCacheRepository()


@pytest.fixture
def registry(api_store, remote):
    return SessionRegistry(store=api_store, remote=remote)


@pytest.fixture
def client(api_store, registry):
    """Create a test client with in-memory collaborators."""
    app.dependency_overrides[get_store] = lambda: api_store
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_auth_client] = FakeAuth
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Notion Cache API"


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "cache_healthy": True, "backend": "memory"}


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer bad-token"}, {"Authorization": "Basic x"}])
def test_session_routes_require_auth(client, headers):
    response = client.get("/reference-data", headers=headers)
    assert response.status_code == 401


def test_reference_data(client, remote):
    """First request starts the session: sync, then reference data."""
    response = client.get("/reference-data", headers=AUTH)
    assert response.status_code == 200
    data = response.json()
    assert data["counts"]["modes"] == 1
    assert data["data"]["acupoints"][0]["for"] == "cough"
    assert remote.count("sync-notion-data") == 1


def test_function_read_through(client, remote):
    first = client.post("/functions/get-all-clients", headers=AUTH)
    second = client.post("/functions/get-all-clients", headers=AUTH)

    assert first.status_code == 200
    assert first.json()["is_cached"] is False
    assert second.json()["is_cached"] is True
    assert second.json()["data"] == [{"id": "c1", "name": "Ada"}]
    assert remote.count("get-all-clients") == 1


def test_function_unknown(client):
    response = client.post("/functions/drop-database", headers=AUTH)
    assert response.status_code == 404


def test_function_missing_key_field(client):
    response = client.post("/functions/get-session-logs", json={}, headers=AUTH)
    assert response.status_code == 422


def test_function_profile_redirect(client, remote):
    remote.responses["get-todays-appointments"] = RemoteCallError(
        "Practitioner name missing",
        error_code=ErrorCode.PRACTITIONER_NAME_MISSING.value,
    )

    response = client.post("/functions/get-todays-appointments", headers=AUTH)

    data = response.json()
    assert data["error_code"] == "PRACTITIONER_NAME_MISSING"
    assert data["redirect"] == "/profile-setup"
    assert "Profile Required: Practitioner name missing" in [n["message"] for n in data["notifications"]]


def test_cache_entries(client):
    client.post("/functions/get-all-clients", headers=AUTH)

    response = client.get("/cache/entries", headers=AUTH)
    keys = [entry["key"] for entry in response.json()["entries"]]
    assert "all-clients" in keys
    assert "all-modes" in keys

    assert client.delete("/cache/entries/all-clients", headers=AUTH).status_code == 200
    assert client.delete("/cache/entries/all-clients", headers=AUTH).status_code == 404


def test_cache_stats_and_clear(client):
    client.post("/functions/get-all-clients", headers=AUTH)

    stats = client.get("/cache/stats", headers=AUTH).json()
    assert stats["backend"] == "memory"
    assert stats["owner_entries"] == stats["total_entries"]

    cleared = client.delete("/cache", headers=AUTH).json()
    assert cleared["deleted_count"] == stats["owner_entries"]
    assert client.post("/cache/purge-expired", headers=AUTH).json()["deleted_count"] == 0


def test_sync(client, remote):
    client.get("/sync/status", headers=AUTH)

    response = client.post("/sync", headers=AUTH)

    data = response.json()
    assert data["triggered"] is True
    assert data["status"] == "success"
    assert "Synced 5 databases successfully!" in [n["message"] for n in data["notifications"]]
    assert remote.count("sync-notion-data") == 2


def test_sync_request_body(client, remote):
    client.get("/sync/status", headers=AUTH)

    response = client.post("/sync", headers=AUTH, json={"syncType": "all"})

    assert response.status_code == 200
    sync_payloads = [payload for name, payload, _ in remote.calls if name == "sync-notion-data"]
    assert sync_payloads[-1] == {"syncType": "all"}
    assert client.post("/sync", headers=AUTH, json={"syncType": "modes"}).status_code == 422


def test_config_status(client, remote):
    assert client.get("/config/status", headers=AUTH).json() == {"is_configured": True, "error": None}

    remote.responses["get-notion-secrets"] = RemoteCallError(
        "Notion configuration not found",
        error_code=ErrorCode.NOTION_CONFIG_NOT_FOUND.value,
    )
    assert client.get("/config/status", headers=AUTH).json() == {"is_configured": False, "error": None}


def test_logout(client, registry):
    client.get("/reference-data", headers=AUTH)
    assert len(registry) == 1

    response = client.post("/logout", headers=AUTH)
    assert response.status_code == 200
    assert len(registry) == 0
