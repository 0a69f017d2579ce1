"""Tests for /api/auth endpoints."""

from audittrail.core.config import settings
from audittrail.models import AuditTrailEntry

from conftest import DEFAULT_PASSWORD, auth_headers_for


def _login(client, username, password):
    return client.post("/api/auth/login", json={"username": username, "password": password})


class TestLogin:

    def test_wrong_password_is_generic_200(self, client, db, alice):
        resp = _login(client, "alice", "wrong-password")

        assert resp.status_code == 200
        body = resp.json()
        assert body["isSuccess"] is False
        assert body["errorMessage"] == "Invalid username or password"
        assert body["data"] is None

        failed = db.query(AuditTrailEntry).filter(AuditTrailEntry.event_type == "UserLoginFailed").all()
        assert len(failed) == 1
        assert failed[0].result == "Failed"

    def test_unknown_user_same_response(self, client, alice):
        wrong_password = _login(client, "alice", "wrong-password").json()
        unknown_user = _login(client, "nobody", "wrong-password").json()
        assert wrong_password == unknown_user

    def test_success_returns_token_and_user(self, client, db, alice):
        resp = _login(client, "alice", DEFAULT_PASSWORD)

        assert resp.status_code == 200
        body = resp.json()
        assert body["isSuccess"] is True
        data = body["data"]
        assert data["token"]
        assert data["refreshToken"]
        assert data["expiresAt"]
        assert data["user"]["username"] == "alice"
        assert data["user"]["roleName"] == "User"
        assert "passwordHash" not in data["user"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["data"]["id"] == alice.id

        entry = db.query(AuditTrailEntry).filter(AuditTrailEntry.event_type == "UserLogin").one()
        assert entry.user_id == alice.id

    def test_forwarded_ip_is_recorded(self, client, db, alice):
        client.post(
            "/api/auth/login",
            json={"username": "alice", "password": "nope-nope"},
            headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1"},
        )
        entry = db.query(AuditTrailEntry).one()
        assert entry.ip_address == "198.51.100.7"

    def test_locked_account_cannot_log_in(self, client, db, alice):
        for _ in range(settings.max_failed_login_attempts):
            _login(client, "alice", "wrong-password")

        resp = _login(client, "alice", DEFAULT_PASSWORD)
        assert resp.json()["isSuccess"] is False

        db.refresh(alice)
        assert alice.is_locked is True

    def test_missing_fields_is_400(self, client):
        resp = client.post("/api/auth/login", json={"username": "alice"})
        assert resp.status_code == 400
        assert resp.json()["errorCode"] == "VALIDATION_ERROR"


class TestSession:

    def test_me(self, client, alice):
        resp = client.get("/api/auth/me", headers=auth_headers_for(alice))
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "alice@example.com"

    def test_locked_user_token_rejected(self, client, db, alice):
        headers = auth_headers_for(alice)
        alice.is_locked = True
        db.commit()
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_logout_is_audited(self, client, db, alice):
        resp = client.post("/api/auth/logout", headers=auth_headers_for(alice))
        assert resp.status_code == 200
        assert resp.json()["isSuccess"] is True
        entry = db.query(AuditTrailEntry).filter(AuditTrailEntry.event_type == "UserLogout").one()
        assert entry.session_id is not None

    def test_change_own_password(self, client, alice):
        headers = auth_headers_for(alice)
        resp = client.post(
            "/api/auth/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "a-brand-new-one"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert _login(client, "alice", "a-brand-new-one").json()["isSuccess"] is True

    def test_change_password_with_wrong_current(self, client, alice):
        resp = client.post(
            "/api/auth/change-password",
            json={"currentPassword": "not-it", "newPassword": "a-brand-new-one"},
            headers=auth_headers_for(alice),
        )
        assert resp.status_code == 400
