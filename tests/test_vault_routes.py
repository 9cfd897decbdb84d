"""
Tests for the vault API endpoints.

Uses FastAPI TestClient against a real VaultService on a temp vault.
Auth bypassed via dependency_overrides except in the auth tests.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from keyward.api import security
from keyward.api.main import app
from keyward.api.security import initialize_session_token, verify_session_token
from keyward.api.vault_routes import get_vault_service, set_vault_service
from keyward.vault.service import VaultService

MASTER_KEY = "correct horse"


@pytest.fixture
def service(settings, connection):
    svc = VaultService(settings=settings, connection=connection, breach_checker=MagicMock())
    set_vault_service(svc)
    return svc


@pytest.fixture
def client(service):
    """TestClient with auth bypass."""
    app.dependency_overrides[verify_session_token] = lambda: "test-token"
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register_and_login(client, username="alice"):
    registered = client.post(
        "/api/vault/register", json={"username": username, "master_key": MASTER_KEY}
    ).json()
    client.post("/api/vault/login", json={"username": username, "master_key": MASTER_KEY})
    return registered["data"]["id"]


class TestAuth:

    def test_requires_session_token(self, service):
        app.dependency_overrides.pop(verify_session_token, None)
        security._SESSION_TOKEN = None
        resp = TestClient(app).post("/api/vault/logout")
        assert resp.status_code in (401, 503)

    def test_rejects_wrong_token(self, service):
        app.dependency_overrides.pop(verify_session_token, None)
        initialize_session_token()
        resp = TestClient(app).post("/api/vault/logout", headers={"X-Session-Token": "nope"})
        assert resp.status_code == 401

    def test_accepts_current_token(self, service):
        app.dependency_overrides.pop(verify_session_token, None)
        token = initialize_session_token()
        resp = TestClient(app).get(
            "/api/vault/generate-password", headers={"X-Session-Token": token}
        )
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_frontend_fetches_token_then_calls_vault(self, service):
        app.dependency_overrides.pop(verify_session_token, None)
        with TestClient(app) as test_client:
            token = test_client.get("/api/session").json()["session_token"]

            resp = test_client.post(
                "/api/vault/register",
                json={"username": "alice", "master_key": MASTER_KEY},
                headers={"X-Session-Token": token},
            )

        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_token_changes_on_restart(self, service):
        with TestClient(app) as test_client:
            first = test_client.get("/api/session").json()["session_token"]
        with TestClient(app) as test_client:
            second = test_client.get("/api/session").json()["session_token"]

        assert first != second

    def test_get_session_token_before_init(self):
        security._SESSION_TOKEN = None
        with pytest.raises(RuntimeError):
            security.get_session_token()


class TestVaultRoutes:

    def test_root(self, client):
        assert client.get("/api").json()["name"] == "keyward"

    def test_register_and_login(self, client):
        resp = client.post("/api/vault/register", json={"username": "alice", "master_key": MASTER_KEY})
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        login = client.post("/api/vault/login", json={"username": "alice", "master_key": MASTER_KEY})
        body = login.json()
        assert body["success"] is True
        assert body["data"]["route"] == "local-only"

    def test_failures_use_envelope_not_http_errors(self, client):
        resp = client.post("/api/vault/login", json={"username": "alice", "master_key": "nope"})
        assert resp.status_code == 200
        assert resp.json() == {
            "success": False,
            "message": "Invalid username or master key",
            "kind": "auth-failed",
        }

    def test_malformed_body_is_422(self, client):
        resp = client.post("/api/vault/records", json={"service": "mail"})
        assert resp.status_code == 422

    def test_record_lifecycle(self, client):
        register_and_login(client)

        created = client.post(
            "/api/vault/records",
            json={"service": "mail", "username": "alice@example.com", "secret": "s3cret"},
        ).json()
        record_id = created["data"]["id"]

        listed = client.get("/api/vault/records").json()
        assert [r["id"] for r in listed["data"]["records"]] == [record_id]
        assert "secret" not in listed["data"]["records"][0]

        denied = client.post(f"/api/vault/records/{record_id}/reveal", json={}).json()
        assert denied["kind"] == "auth-failed"

        grant = client.post(
            "/api/vault/step-up", json={"username": "alice", "master_key": MASTER_KEY}
        ).json()["data"]["grant"]
        revealed = client.post(
            f"/api/vault/records/{record_id}/reveal", json={"grant": grant}
        ).json()
        assert revealed["data"]["secret"] == "s3cret"

        grant = client.post(
            "/api/vault/step-up", json={"username": "alice", "master_key": MASTER_KEY}
        ).json()["data"]["grant"]
        updated = client.put(
            f"/api/vault/records/{record_id}",
            json={"fields": {"secret": "n3w"}, "grant": grant},
        ).json()
        assert updated["success"] is True

        deleted = client.delete(f"/api/vault/records/{record_id}").json()
        assert deleted["success"] is True

    def test_cloud_toggle(self, client, transport):
        identity_id = register_and_login(client)

        body = client.post(
            "/api/vault/cloud", json={"identity_id": identity_id, "enabled": True}
        ).json()

        assert body["success"] is True
        assert body["data"]["cloud_enabled"] is True
        assert body["data"]["remote_id"]

    def test_delete_account(self, client, service):
        identity_id = register_and_login(client)

        body = client.delete(f"/api/vault/accounts/{identity_id}").json()

        assert body["success"] is True
        assert service.identities.get_by_id(identity_id) is None

    def test_generate_password(self, client):
        body = client.get("/api/vault/generate-password", params={"length": 24}).json()
        assert len(body["data"]["password"]) == 24

    def test_check_breaches(self, client, service):
        service.breach_checker.check.return_value = []
        body = client.post("/api/vault/breaches", json={"account": "alice@example.com"}).json()
        assert body["success"] is True
        assert body["data"] == {"breaches": []}

    def test_logout(self, client):
        register_and_login(client)
        assert client.post("/api/vault/logout").json()["success"] is True
        assert client.get("/api/vault/records").json()["kind"] == "session-ended"


class TestServiceSingleton:

    def test_get_vault_service_builds_from_settings(self, settings):
        svc = get_vault_service()
        assert svc.settings is settings
        assert get_vault_service() is svc

    def test_shutdown_releases_service(self, service, transport):
        import keyward.api.vault_routes as routes_mod

        with TestClient(app) as test_client:
            test_client.get("/api")

        assert routes_mod._service is None
