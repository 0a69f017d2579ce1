"""Tests for the unit of work that turns entity mutations into audit entries."""

import json

import pytest

from audittrail.core.config import AuditFailurePolicy, settings
from audittrail.exceptions import AuditWriteError
from audittrail.models import AuditTrailEntry, FileCategory, LoginAttempt, Role
from audittrail.services.change_tracking import (
    EntityChange,
    UnitOfWork,
    diff,
    entity_id_of,
    entity_name_of,
    is_audited,
    snapshot,
)

from conftest import make_folder


def _entries(db):
    return db.query(AuditTrailEntry).order_by(AuditTrailEntry.id).all()


class TestHelpers:

    def test_event_type_joins_entity_and_action(self):
        change = EntityChange(entity_type="FileCategory", action="Created", entity_id="1")
        assert change.event_type == "FileCategoryCreated"

    def test_snapshot_excludes_sensitive_fields(self, alice):
        values = snapshot(alice)
        assert values["username"] == "alice"
        assert "password_hash" not in values
        assert "password_salt" not in values
        assert isinstance(values["created_at"], str)

    def test_diff_ignores_modification_stamps(self):
        old = {"name": "a", "description": None, "modified_at": None}
        new = {"name": "a", "description": "x", "modified_at": "2024-01-01T00:00:00"}
        assert diff(old, new) == ({"description": None}, {"description": "x"})

    def test_identity_helpers(self, db):
        folder = make_folder(db, "Legal")
        assert entity_id_of(folder) == str(folder.id)
        assert entity_name_of(folder) == "Legal"
        assert entity_name_of(LoginAttempt(username="x")) is None

    def test_logs_are_not_audited(self):
        assert not is_audited(AuditTrailEntry())
        assert not is_audited(LoginAttempt())
        assert is_audited(Role())


class TestUnitOfWork:

    def test_add_stamps_and_audits_creation(self, db, admin_ctx):
        with UnitOfWork(db, admin_ctx) as uow:
            role = uow.add(Role(name="Auditors"))
            changes = uow.commit()

        assert role.created_by == admin_ctx.user_id
        assert role.created_at is not None
        assert [c.event_type for c in changes] == ["RoleCreated"]

        entry = _entries(db)[-1]
        assert entry.event_type == "RoleCreated"
        assert entry.action == "Created"
        assert entry.entity_id == str(role.id)
        assert entry.entity_name == "Auditors"
        assert entry.user_id == admin_ctx.user_id
        assert json.loads(entry.new_value)["name"] == "Auditors"
        assert entry.old_value is None

    def test_modification_records_only_changed_fields(self, db, admin_ctx):
        folder = make_folder(db, "Legal")
        with UnitOfWork(db, admin_ctx) as uow:
            uow.track(folder)
            folder.description = "Contracts and NDAs"
            uow.commit()

        assert folder.modified_by == admin_ctx.user_id
        assert folder.modified_at is not None

        entry = _entries(db)[-1]
        assert entry.event_type == "FileCategoryModified"
        assert json.loads(entry.old_value) == {"description": None}
        assert json.loads(entry.new_value) == {"description": "Contracts and NDAs"}

    def test_unchanged_tracked_entity_produces_nothing(self, db, admin_ctx):
        folder = make_folder(db, "Legal")
        with UnitOfWork(db, admin_ctx) as uow:
            uow.track(folder)
            assert uow.commit() == []

        assert folder.modified_at is None
        assert _entries(db) == []

    def test_delete_records_old_values(self, db, admin_ctx):
        role = Role(name="Temporary")
        db.add(role)
        db.commit()
        role_id = str(role.id)

        with UnitOfWork(db, admin_ctx) as uow:
            uow.delete(role)
            uow.commit()

        entry = _entries(db)[-1]
        assert entry.event_type == "RoleDeleted"
        assert entry.entity_id == role_id
        assert json.loads(entry.old_value)["name"] == "Temporary"
        assert db.query(Role).filter(Role.name == "Temporary").first() is None

    def test_login_attempts_are_persisted_but_not_audited(self, db, admin_ctx):
        with UnitOfWork(db, admin_ctx) as uow:
            uow.add(LoginAttempt(username="alice", is_successful=False))
            assert uow.commit() == []

        assert db.query(LoginAttempt).count() == 1
        assert _entries(db) == []

    def test_exception_in_block_rolls_back(self, db, admin_ctx):
        with pytest.raises(RuntimeError):
            with UnitOfWork(db, admin_ctx) as uow:
                uow.add(Role(name="Ghost"))
                raise RuntimeError("boom")

        assert db.query(Role).filter(Role.name == "Ghost").first() is None
        assert _entries(db) == []

    def test_fail_closed_audit_failure_aborts_business_change(self, db, admin_ctx, monkeypatch):
        def _fail(self, entry):
            import sqlalchemy.exc
            raise sqlalchemy.exc.OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(settings, "audit_failure_policy", AuditFailurePolicy.FAIL_CLOSED)
        monkeypatch.setattr("audittrail.repositories.audit_repository.AuditRepository.add", _fail)

        with pytest.raises(AuditWriteError):
            with UnitOfWork(db, admin_ctx) as uow:
                uow.add(FileCategory(name="Legal", path="/Legal/"))
                uow.commit()

        assert db.query(FileCategory).count() == 0

    def test_fail_open_audit_failure_keeps_business_change(self, db, admin_ctx, monkeypatch):
        def _fail(self, entry):
            import sqlalchemy.exc
            raise sqlalchemy.exc.OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(settings, "audit_failure_policy", AuditFailurePolicy.FAIL_OPEN)
        monkeypatch.setattr("audittrail.repositories.audit_repository.AuditRepository.add", _fail)

        with UnitOfWork(db, admin_ctx) as uow:
            uow.add(FileCategory(name="Legal", path="/Legal/"))
            uow.commit()

        assert db.query(FileCategory).count() == 1
        assert _entries(db) == []
