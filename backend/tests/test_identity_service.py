"""Tests for user and role administration."""

import json

import pytest

from audittrail.core.auth import AuthContext
from audittrail.core.passwords import verify_password
from audittrail.core.seeder import seed_identity
from audittrail.exceptions import RoleNotFoundError, UserNotFoundError, ValidationError
from audittrail.models import AuditTrailEntry, Role, User
from audittrail.services import identity_service


class TestRoles:

    def test_create_role_is_audited(self, db, admin_ctx):
        role = identity_service.create_role(db, "Auditors", admin_ctx, description="Read the trail")
        assert role.id is not None
        entry = db.query(AuditTrailEntry).filter(AuditTrailEntry.event_type == "RoleCreated").one()
        assert entry.entity_name == "Auditors"

    def test_duplicate_role_rejected_case_insensitively(self, db, admin_ctx, user_role):
        with pytest.raises(ValidationError):
            identity_service.create_role(db, "user", admin_ctx)

    def test_blank_role_rejected(self, db, admin_ctx):
        with pytest.raises(ValidationError):
            identity_service.create_role(db, "   ", admin_ctx)


class TestCreateUser:

    def test_creates_hashed_user(self, db, admin_ctx, user_role):
        user = identity_service.create_user(
            db, "bob", "Bob@Example.com", "long-enough-1", user_role.id, admin_ctx,
            first_name="Bob", last_name="Builder",
        )
        assert user.email == "bob@example.com"
        assert user.password_hash != "long-enough-1"
        assert verify_password("long-enough-1", user.password_hash)
        assert user.password_salt == user.password_hash[:29]
        assert user.created_by == admin_ctx.user_id

        entry = db.query(AuditTrailEntry).filter(AuditTrailEntry.event_type == "UserCreated").one()
        assert entry.entity_name == "bob"
        assert "password_hash" not in json.loads(entry.new_value)

    @pytest.mark.parametrize("username", ["ab", "has space", "x" * 101, ""])
    def test_bad_username(self, db, admin_ctx, user_role, username):
        with pytest.raises(ValidationError):
            identity_service.create_user(db, username, "x@example.com", "long-enough-1", user_role.id, admin_ctx)

    def test_bad_email_and_short_password(self, db, admin_ctx, user_role):
        with pytest.raises(ValidationError):
            identity_service.create_user(db, "bob", "not-an-email", "long-enough-1", user_role.id, admin_ctx)
        with pytest.raises(ValidationError):
            identity_service.create_user(db, "bob", "bob@example.com", "short", user_role.id, admin_ctx)

    def test_duplicates_rejected(self, db, admin_ctx, alice, user_role):
        with pytest.raises(ValidationError):
            identity_service.create_user(db, "alice", "other@example.com", "long-enough-1", user_role.id, admin_ctx)
        with pytest.raises(ValidationError):
            identity_service.create_user(db, "alice2", "ALICE@example.com", "long-enough-1", user_role.id, admin_ctx)

    def test_unknown_role(self, db, admin_ctx):
        with pytest.raises(RoleNotFoundError):
            identity_service.create_user(db, "bob", "bob@example.com", "long-enough-1", 999, admin_ctx)


class TestUserMaintenance:

    def test_self_password_change_requires_current(self, db, alice, alice_ctx):
        with pytest.raises(ValidationError):
            identity_service.change_password(db, alice.id, "brand-new-pass", alice_ctx)
        with pytest.raises(ValidationError):
            identity_service.change_password(db, alice.id, "brand-new-pass", alice_ctx, current_password="nope")

        user = identity_service.change_password(
            db, alice.id, "brand-new-pass", alice_ctx, current_password="correct-horse-1"
        )
        assert verify_password("brand-new-pass", user.password_hash)
        assert user.must_change_password is False

    def test_admin_reset_forces_change(self, db, alice, admin_ctx):
        user = identity_service.change_password(db, alice.id, "reset-by-admin", admin_ctx)
        assert user.must_change_password is True

        entry = db.query(AuditTrailEntry).filter(AuditTrailEntry.event_type == "UserModified").one()
        assert "password_hash" not in entry.new_value
        assert "must_change_password" in json.loads(entry.new_value)

    def test_deactivate(self, db, alice, admin_ctx):
        identity_service.deactivate_user(db, alice.id, admin_ctx)
        db.refresh(alice)
        assert alice.is_active is False
        assert identity_service.list_users(db) == [identity_service.get_user(db, admin_ctx.user_id)]
        assert len(identity_service.list_users(db, include_inactive=True)) == 2

    def test_cannot_deactivate_self(self, db, admin, admin_ctx):
        with pytest.raises(ValidationError):
            identity_service.deactivate_user(db, admin.id, admin_ctx)

    def test_change_role(self, db, alice, admin_ctx, admin_role):
        user = identity_service.change_role(db, alice.id, admin_role.id, admin_ctx)
        assert user.role_id == admin_role.id

    def test_get_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            identity_service.get_user(db, "missing")


class TestSeeder:

    def test_seeds_default_roles_once(self, db):
        seed_identity(db)
        seed_identity(db)
        names = sorted(r.name for r in db.query(Role).all())
        assert names == ["Administrator", "User"]
        assert db.query(User).count() == 0

    def test_bootstrap_admin(self, db, monkeypatch):
        from audittrail.core.config import settings

        monkeypatch.setattr(settings, "bootstrap_admin_username", "root")
        monkeypatch.setattr(settings, "bootstrap_admin_password", "bootstrap-pass-1")
        seed_identity(db)

        user = db.query(User).one()
        assert user.username == "root"
        assert user.must_change_password is True
        assert user.role.name == "Administrator"
        assert AuthContext.for_user(user).is_admin
