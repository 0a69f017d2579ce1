"""Tests for the health endpoints and request-context headers."""

from audittrail.core.config import settings


class TestHealthEndpoints:

    def test_health_reports_database_and_version(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["db"] == "ok"
        assert body["version"] == settings.application_version
        assert isinstance(body["uptime_seconds"], int)

    def test_root_names_the_api(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "AuditTrail API"

    def test_health_endpoints_need_no_token(self, client):
        assert client.get("/health").status_code == 200
        assert client.get("/api/audit").status_code == 401


class TestRequestContextHeaders:

    def test_generated_request_id(self, client):
        resp = client.get("/health")
        assert len(resp.headers["x-request-id"]) == 16
        assert resp.headers["x-response-time"].endswith("ms")

    def test_caller_request_id_echoed(self, client):
        resp = client.get("/", headers={"X-Request-ID": "req-123"})
        assert resp.headers["x-request-id"] == "req-123"
