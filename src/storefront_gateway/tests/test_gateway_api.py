"""
Storefront Gateway - API Tests
Tests for the integration and OAuth redirect endpoints.
"""

from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from storefront_gateway.app.main import create_app
from storefront_sync.app.core.config import Settings
from storefront_sync.app.storage.catalog import create_demo_catalog
from storefront_sync.app.storage.kv_store import InMemoryKeyValueStore
from storefront_sync.app.sync.manager import create_integration_manager


def build_manager():
    return create_integration_manager(
        settings=Settings(_env_file=None, latency_scale=0, fault_seed=5),
        catalog=create_demo_catalog(),
        store=InMemoryKeyValueStore(),
    )


@pytest.fixture
def client():
    """Client with a fresh in-memory integration manager."""
    with TestClient(create_app(manager_factory=build_manager)) as client:
        yield client


def connect_with_token(client, platform_id):
    response = client.post(f"/api/v1/platforms/{platform_id}/credentials", json={"accessToken": "tok"})
    assert response.status_code == 200
    return response.json()


def test_root(client):
    """Test the welcome endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_list_platforms(client):
    """Test the platform list."""
    response = client.get("/api/v1/platforms")

    assert response.status_code == 200
    platforms = response.json()["platforms"]
    assert len(platforms) == 8
    assert platforms[0]["id"] == "etsy"
    assert platforms[0]["authUrl"] == "https://www.etsy.com/oauth/connect"
    assert {platform["status"] for platform in platforms} == {"not_connected"}


def test_unknown_platform(client):
    """Test that unknown ids return 404."""
    response = client.get("/api/v1/platforms/myspace")
    assert response.status_code == 404


def test_oauth_connect_flow(client):
    """Test connect, provider redirect and resulting platform status."""
    response = client.post("/api/v1/platforms/etsy/connect")
    assert response.status_code == 200
    url = response.json()["authorizationUrl"]
    state = parse_qs(urlsplit(url).query)["state"][0]

    response = client.get("/oauth-callback", params={"code": "abc", "state": state, "platform": "etsy"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Successfully connected to Etsy!"
    assert "credentials" not in body

    platform = client.get("/api/v1/platforms/etsy").json()
    assert platform["status"] == "connected"
    assert platform["lastSync"] == "Just now"


def test_oauth_callback_denied(client):
    """Test that a provider error is answered with 400."""
    response = client.get("/oauth-callback", params={"error": "access_denied", "platform": "etsy"})

    assert response.status_code == 400
    assert response.json()["errorType"] == "AuthorizationError"
    assert client.get("/api/v1/platforms/etsy").json()["status"] == "not_connected"


def test_oauth_callback_forged_state(client):
    """Test that a state that was never issued is rejected."""
    response = client.get("/oauth-callback", params={"code": "abc", "state": "etsy_forged"})

    assert response.status_code == 400
    assert response.json()["errorType"] == "StateMismatchError"


def test_sync_disconnected_platform(client):
    """Test that syncing without credentials reports the expired message."""
    response = client.post("/api/v1/platforms/tiktok/sync")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Authentication expired for TikTok Shop. Please reconnect."


def test_sync_connected_platform(client):
    """Test a manual import-only sync."""
    connect_with_token(client, "etsy")

    response = client.post("/api/v1/platforms/etsy/sync", json={"direction": "import"})

    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Successfully imported products from Etsy"
    assert body["details"]["itemsSynced"] >= 10


def test_sync_config_validation(client):
    """Test that intervals below the minimum are rejected."""
    response = client.put("/api/v1/platforms/etsy/sync-config", json={"autoSync": True, "syncInterval": 5})
    assert response.status_code == 400

    response = client.put("/api/v1/platforms/etsy/sync-config", json={"autoSync": True, "syncInterval": 0})
    assert response.status_code == 422


def test_sync_config_arms_auto_sync(client):
    """Test saving sync settings and the resulting scheduler status."""
    response = client.put(
        "/api/v1/platforms/etsy/sync-config",
        json={"autoSync": True, "syncInterval": 30, "syncDirection": "export"},
    )

    assert response.status_code == 200
    assert response.json()["syncDirection"] == "export"
    assert client.get("/api/v1/platforms/etsy/sync-config").json()["syncInterval"] == 30

    status = client.get("/api/v1/status").json()
    assert [job["id"] for job in status["scheduler"]["jobs"]] == ["etsy"]


def test_inventory_sync(client):
    """Test an import-only inventory sync against the simulated Square adapter."""
    connect_with_token(client, "square")
    client.put("/api/v1/platforms/square/sync-config", json={"syncDirection": "import", "syncInterval": 60})

    response = client.post("/api/v1/platforms/square/inventory-sync")

    body = response.json()
    assert body["success"] is True
    assert body["details"]["inventoryUpdated"] == 5


def test_inventory_settings(client):
    """Test updating the inventory priority."""
    response = client.put("/api/v1/platforms/square/inventory-settings", json={"inventoryPriority": "local"})

    assert response.status_code == 200
    assert response.json()["inventoryPriority"] == "local"


def test_webhooks(client):
    """Test webhook setup for supported and unsupported platforms."""
    assert client.post("/api/v1/platforms/tiktok/webhook").json() == {"platformId": "tiktok", "success": True}
    assert client.post("/api/v1/platforms/etsy/webhook").json()["success"] is False


def test_disconnect(client):
    """Test disconnecting a platform."""
    connect_with_token(client, "square")

    response = client.post("/api/v1/platforms/square/disconnect")

    assert response.json()["status"] == "not_connected"
    assert "lastSync" not in response.json()
