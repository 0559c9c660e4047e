"""Contract tests for OpenAPI schema validation.

These tests verify that the API conforms to its OpenAPI specification
and that endpoints return expected response structures.
"""

from __future__ import annotations

import sys
import uuid
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

USER_HEADERS = {"X-User-ID": str(uuid.uuid4())}


@pytest.fixture
def app():
    from presentation.main import app

    return app


@pytest.fixture
def client(app):
    from starlette.testclient import TestClient

    return TestClient(app)


@pytest.mark.contract
class TestOpenAPIContract:

    def test_health_endpoint(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert "timestamp" in data

    def test_openapi_schema_available(self, client):
        resp = client.get("/openapi.json")
        assert resp.status_code == 200
        schema = resp.json()
        assert schema["info"]["title"] == "VideoHub Channel Lifecycle API"
        assert "paths" in schema

    def test_channel_endpoints_documented(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        assert "delete" in paths["/api/v1/channels/me"]
        assert "delete" in paths["/api/v1/channels/admin/{user_id}"]
        assert "post" in paths["/api/v1/channels/recover/{tombstone_id}"]
        assert "get" in paths["/api/v1/channels/deletion-stats"]
        assert "get" in paths["/api/v1/channels/deleted"]

    def test_watch_history_endpoints_documented(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        base = "/api/v1/users/{user_id}/watch-history"
        assert {"get", "delete"} <= set(paths[base])
        for suffix in ("/stats", "/export", "/restore"):
            assert base + suffix in paths
        assert "/api/v1/watch-history/cleanup" in paths
        assert "/api/v1/watch-history/deleted-channel-analytics" in paths

    def test_export_documents_both_formats(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        export = paths["/api/v1/users/{user_id}/watch-history/export"]["get"]
        assert {"application/json", "text/csv"} <= set(export["responses"]["200"]["content"])

    def test_error_models_documented(self, client):
        schema = client.get("/openapi.json").json()
        delete_me = schema["paths"]["/api/v1/channels/me"]["delete"]
        assert {"400", "404", "409"} <= set(delete_me["responses"])
        assert "ErrorResponse" in schema["components"]["schemas"]

    def test_error_responses_follow_rfc9457(self, client):
        resp = client.request("DELETE", "/api/v1/channels/me", headers=USER_HEADERS)
        assert resp.status_code == 404
        data = resp.json()
        assert data["type"].endswith("/channel-not-found")
        assert data["title"] == "Channel Not Found"
        assert data["status"] == 404
        assert "detail" in data
