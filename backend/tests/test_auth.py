"""Tests for the auth module — token creation, validation and bearer enforcement."""

from audittrail.core.auth import AuthContext, session_id_for
from audittrail.core.config import settings
from audittrail.core.token_factory import create_refresh_token, create_token, decode_token


class TestTokenFactory:

    def test_create_and_decode(self):
        token = create_token("user-1", "Administrator", "test-secret", username="admin")
        payload = decode_token(token, "test-secret")
        assert payload is not None
        assert payload.sub == "user-1"
        assert payload.role == "Administrator"
        assert payload.username == "admin"

    def test_wrong_secret_returns_none(self):
        token = create_token("user-1", "User", "correct-secret")
        assert decode_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_token("user-1", "User", "secret", expires_minutes=-1)
        assert decode_token(token, "secret") is None

    def test_foreign_issuer_rejected(self):
        token = create_token("user-1", "User", "secret", issuer="someone-else")
        assert decode_token(token, "secret", issuer="audittrail") is None
        assert decode_token(token, "secret").issuer == "someone-else"

    def test_malformed_token_returns_none(self):
        assert decode_token("not.a.token", "secret") is None
        assert decode_token("", "secret") is None

    def test_refresh_tokens_are_random(self):
        assert create_refresh_token() != create_refresh_token()

    def test_session_id_hides_token(self):
        token = create_token("user-1", "User", "secret")
        session_id = session_id_for(token)
        assert len(session_id) == 32
        assert session_id == session_id_for(token)
        assert session_id not in token


class TestAuthContext:

    def test_admin_role_name_is_case_insensitive(self):
        assert AuthContext(user_id="1", role_name="administrator").is_admin
        assert not AuthContext(user_id="1", role_name="User").is_admin

    def test_system_context(self):
        ctx = AuthContext.system()
        assert not ctx.is_authenticated
        assert ctx.username == "system"


class TestBearerEnforcement:

    def test_missing_token_is_401(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        body = resp.json()
        assert body["isSuccess"] is False
        assert body["errorCode"] == "UNAUTHORIZED"

    def test_forged_token_is_401(self, client, alice):
        token = create_token(alice.id, "Administrator", "not-the-server-secret")
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_token_for_deleted_user_is_401(self, client):
        token = create_token("ghost", "User", settings.jwt_secret_key)
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
