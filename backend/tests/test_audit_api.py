"""Tests for /api/audit."""

from conftest import DEFAULT_PASSWORD, auth_headers_for


class TestAuditApi:

    def test_requires_administrator(self, client, alice):
        assert client.get("/api/audit", headers=auth_headers_for(alice)).status_code == 403
        assert client.get("/api/audit").status_code == 401

    def test_search_returns_page_info(self, client, admin, alice):
        for _ in range(3):
            client.post("/api/auth/login", json={"username": "alice", "password": "wrong-password"})
        client.post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD})

        resp = client.get(
            "/api/audit",
            params={"eventType": "UserLoginFailed", "pageSize": 2},
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["pageInfo"] == {"page": 1, "pageSize": 2, "total": 3}
        assert len(data["entries"]) == 2
        assert all(e["eventType"] == "UserLoginFailed" for e in data["entries"])
        assert data["entries"][0]["eventCategory"] == "User"

    def test_by_user(self, client, admin, alice):
        client.post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD})
        entries = client.get(f"/api/audit/users/{alice.id}", headers=auth_headers_for(admin)).json()["data"]
        assert [e["eventType"] for e in entries] == ["UserLogin"]

    def test_by_entity(self, client, db, admin):
        headers = auth_headers_for(admin)
        folder_id = client.post("/api/folders", json={"name": "Legal"}, headers=headers).json()["data"]["id"]
        client.put(f"/api/folders/{folder_id}", json={"description": "Updated"}, headers=headers)

        entries = client.get(f"/api/audit/entities/{folder_id}", headers=headers).json()["data"]
        folder_events = [e["eventType"] for e in entries if e["entityType"] == "FileCategory"]
        assert folder_events == ["FileCategoryModified", "FileCategoryCreated"]
        assert entries[0]["userId"] == admin.id

    def test_invalid_date_is_400(self, client, admin):
        resp = client.get("/api/audit", params={"startDate": "yesterday"}, headers=auth_headers_for(admin))
        assert resp.status_code == 400

    def test_filter_by_result(self, client, admin, alice):
        for _ in range(2):
            client.post("/api/auth/login", json={"username": "alice", "password": "wrong-password"})
        client.post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD})

        data = client.get("/api/audit", params={"result": "Failed"}, headers=auth_headers_for(admin)).json()["data"]
        assert data["pageInfo"]["total"] == 2
        assert {e["eventType"] for e in data["entries"]} == {"UserLoginFailed"}

    def test_inverted_range_is_400(self, client, admin):
        resp = client.get(
            "/api/audit",
            params={"startDate": "2024-02-01T00:00:00Z", "endDate": "2024-01-01T00:00:00Z"},
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 400
        assert resp.json()["isSuccess"] is False

    def test_type_listings(self, client, admin, alice):
        client.post("/api/auth/login", json={"username": "alice", "password": DEFAULT_PASSWORD})
        headers = auth_headers_for(admin)
        client.post("/api/folders", json={"name": "Legal"}, headers=headers)

        event_types = client.get("/api/audit/event-types", headers=headers).json()["data"]
        assert "UserLogin" in event_types
        assert "FileCategoryCreated" in event_types
        assert event_types == sorted(event_types)

        entity_types = client.get("/api/audit/entity-types", headers=headers).json()["data"]
        assert "FileCategory" in entity_types

    def test_type_listings_require_administrator(self, client, alice):
        assert client.get("/api/audit/event-types", headers=auth_headers_for(alice)).status_code == 403
