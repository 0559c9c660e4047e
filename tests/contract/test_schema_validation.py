"""Schema validation contract tests: request validation and RFC 9457 errors."""

from __future__ import annotations

import sys
import uuid
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

USER_HEADERS = {"X-User-ID": str(uuid.uuid4())}
ADMIN_HEADERS = {"X-Admin-ID": str(uuid.uuid4())}


@pytest.fixture
def client():
    from presentation.main import create_app
    from starlette.testclient import TestClient

    return TestClient(create_app())


@pytest.mark.contract
class TestDeletionValidation:

    def test_non_uuid_user_header(self, client):
        resp = client.request("DELETE", "/api/v1/channels/me", headers={"X-User-ID": "alice"})
        assert resp.status_code == 422
        data = resp.json()
        assert data["title"] == "Validation Error"
        assert any("X-User-ID" in e.get("field", "") for e in data.get("errors", []))

    def test_retention_map_must_be_strings(self, client):
        resp = client.request(
            "DELETE",
            "/api/v1/channels/me",
            json={"data_retention": {"videos": ["deleted"]}},
            headers=USER_HEADERS,
        )
        assert resp.status_code == 422

    def test_unknown_retention_action_is_domain_400(self, client):
        resp = client.request(
            "DELETE",
            "/api/v1/channels/me",
            json={"watch_history_retention": "forgotten"},
            headers=USER_HEADERS,
        )
        assert resp.status_code == 400
        assert resp.json()["title"] == "Invalid Retention Policy"

    def test_admin_path_requires_uuid(self, client):
        resp = client.request("DELETE", "/api/v1/channels/admin/not-a-uuid", headers=ADMIN_HEADERS)
        assert resp.status_code == 422


@pytest.mark.contract
class TestRecoveryValidation:

    def test_new_user_id_must_be_uuid(self, client):
        resp = client.post(
            f"/api/v1/channels/recover/{uuid.uuid4()}", json={"new_user_id": "nope"}
        )
        assert resp.status_code == 422

    def test_missing_body(self, client):
        resp = client.post(f"/api/v1/channels/recover/{uuid.uuid4()}")
        assert resp.status_code == 422


@pytest.mark.contract
class TestWatchHistoryValidation:

    def test_page_size_upper_bound(self, client):
        resp = client.get(
            f"/api/v1/users/{uuid.uuid4()}/watch-history", params={"page_size": 500}
        )
        assert resp.status_code == 422

    def test_page_must_be_positive(self, client):
        resp = client.get(f"/api/v1/users/{uuid.uuid4()}/watch-history", params={"page": 0})
        assert resp.status_code == 422

    def test_restore_requires_tombstone_id(self, client):
        resp = client.post(f"/api/v1/users/{uuid.uuid4()}/watch-history/restore", json={})
        assert resp.status_code == 422


@pytest.mark.contract
class TestRFC9457Format:

    def test_validation_error_has_all_fields(self, client):
        resp = client.get("/api/v1/channels/deleted")
        assert resp.status_code == 422
        data = resp.json()
        assert "type" in data
        assert "title" in data
        assert "status" in data
        assert "detail" in data
        assert data["status"] == 422
        assert resp.headers.get("content-type") == "application/problem+json"

    def test_not_found_returns_problem_json(self, client):
        resp = client.post(
            f"/api/v1/channels/recover/{uuid.uuid4()}",
            json={"new_user_id": str(uuid.uuid4())},
        )
        assert resp.status_code == 404
        data = resp.json()
        assert data["status"] == 404
        assert data["instance"].startswith("/api/v1/channels/recover/")
        assert resp.headers.get("content-type") == "application/problem+json"
