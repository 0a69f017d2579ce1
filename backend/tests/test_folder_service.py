"""Tests for folder creation, browsing and deletion."""

import pytest

from audittrail.core.permissions import EDITOR, FULL_CONTROL, READ_ONLY, READ_WRITE, VIEW_ONLY
from audittrail.exceptions import FolderNotFoundError, ForbiddenError, ValidationError
from audittrail.models import AuditTrailEntry, CategoryAccess, FileRecord
from audittrail.services.folder_service import FolderService, build_path, validate_folder_name

from conftest import make_folder, make_grant


def _denials(db):
    return db.query(AuditTrailEntry).filter(AuditTrailEntry.event_type == "AccessDenied").all()


class TestNames:

    def test_paths(self, db):
        root = make_folder(db, "Legal")
        assert build_path("Legal", None) == "/Legal/"
        assert build_path("Contracts", root) == "/Legal/Contracts/"

    @pytest.mark.parametrize("name", ["", "   ", "a/b", "a\\b", "x" * 256])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError):
            validate_folder_name(name)

    def test_name_is_trimmed(self):
        assert validate_folder_name("  Legal ") == "Legal"


class TestCreateFolder:

    def test_admin_creates_root_with_full_control(self, db, admin_ctx, admin_role):
        folder = FolderService(db).create_folder("Legal", None, admin_ctx, description="Legal docs")

        assert folder.path == "/Legal/"
        assert folder.parent_id is None
        assert folder.created_by == admin_ctx.user_id

        grant = db.query(CategoryAccess).filter(CategoryAccess.category_id == folder.id).one()
        assert grant.role_id == admin_role.id
        assert grant.permissions == int(FULL_CONTROL)

        events = [e.event_type for e in db.query(AuditTrailEntry).order_by(AuditTrailEntry.id)]
        assert events == ["FileCategoryCreated", "CategoryAccessCreated"]

    def test_non_admin_cannot_create_root(self, db, alice_ctx):
        with pytest.raises(ForbiddenError):
            FolderService(db).create_folder("Mine", None, alice_ctx)
        assert len(_denials(db)) == 1

    def test_child_requires_upload_on_parent(self, db, alice_ctx, user_role):
        legal = make_folder(db, "Legal")
        service = FolderService(db)
        make_grant(db, legal, user_role, int(READ_ONLY))
        with pytest.raises(ForbiddenError):
            service.create_folder("Contracts", legal.id, alice_ctx)

        make_grant(db, legal, user_role, int(READ_WRITE))
        child = service.create_folder("Contracts", legal.id, alice_ctx)
        assert child.path == "/Legal/Contracts/"
        assert child.parent_id == legal.id

    def test_duplicate_path_rejected(self, db, admin_ctx):
        service = FolderService(db)
        service.create_folder("Legal", None, admin_ctx)
        with pytest.raises(ValidationError):
            service.create_folder("legal", None, admin_ctx)

    def test_missing_parent(self, db, admin_ctx):
        with pytest.raises(FolderNotFoundError):
            FolderService(db).create_folder("Orphan", 777, admin_ctx)


class TestUpdateFolder:

    def test_requires_modify_metadata(self, db, alice_ctx, user_role):
        legal = make_folder(db, "Legal")
        make_grant(db, legal, user_role, int(READ_WRITE))
        with pytest.raises(ForbiddenError):
            FolderService(db).update_folder(legal.id, alice_ctx, description="x")

    def test_updates_fields(self, db, alice_ctx, user_role):
        legal = make_folder(db, "Legal")
        make_grant(db, legal, user_role, int(EDITOR))
        folder = FolderService(db).update_folder(
            legal.id, alice_ctx, description="Updated", inherit_parent_permissions=False
        )
        assert folder.description == "Updated"
        assert folder.inherit_parent_permissions is False
        assert folder.modified_by == alice_ctx.user_id


class TestDeleteFolder:

    def test_root_needs_administrator(self, db, alice_ctx, admin_ctx, user_role):
        legal = make_folder(db, "Legal")
        make_grant(db, legal, user_role, int(FULL_CONTROL))
        service = FolderService(db)

        with pytest.raises(ForbiddenError):
            service.delete_folder(legal.id, alice_ctx)

        service.delete_folder(legal.id, admin_ctx)
        db.refresh(legal)
        assert legal.is_active is False
        with pytest.raises(FolderNotFoundError):
            service.get_folder(legal.id, admin_ctx)

    def test_refuses_non_empty(self, db, admin_ctx, admin_role):
        legal = make_folder(db, "Legal")
        contracts = make_folder(db, "Contracts", parent=legal)
        service = FolderService(db)
        with pytest.raises(ValidationError):
            service.delete_folder(legal.id, admin_ctx)

        db.add(FileRecord(
            name="nda.pdf", checksum="0" * 64, storage_locator="2024/01/01/nda_x.pdf",
            category_id=contracts.id,
        ))
        db.commit()
        make_grant(db, contracts, admin_role, int(FULL_CONTROL))
        with pytest.raises(ValidationError):
            service.delete_folder(contracts.id, admin_ctx)

    def test_child_with_delete_bit(self, db, alice_ctx, user_role):
        legal = make_folder(db, "Legal")
        contracts = make_folder(db, "Contracts", parent=legal)
        make_grant(db, legal, user_role, int(EDITOR))
        FolderService(db).delete_folder(contracts.id, alice_ctx)
        db.refresh(contracts)
        assert contracts.is_active is False


class TestBrowse:

    def test_contents_lists_children_and_current_files(self, db, alice_ctx, user_role):
        legal = make_folder(db, "Legal")
        make_folder(db, "Contracts", parent=legal)
        make_grant(db, legal, user_role, int(VIEW_ONLY))
        db.add_all([
            FileRecord(name="a.pdf", checksum="0" * 64, storage_locator="l/a1", category_id=legal.id,
                       version=1, is_current_version=False),
            FileRecord(name="a.pdf", checksum="0" * 64, storage_locator="l/a2", category_id=legal.id,
                       version=2, is_current_version=True),
            FileRecord(name="b.pdf", checksum="0" * 64, storage_locator="l/b1", category_id=legal.id,
                       is_deleted=True, is_current_version=False),
        ])
        db.commit()

        contents = FolderService(db).get_folder_contents(legal.id, alice_ctx)
        assert contents.permissions == VIEW_ONLY
        assert [f.name for f in contents.subfolders] == ["Contracts"]
        assert [(f.name, f.version) for f in contents.files] == [("a.pdf", 2)]

    def test_view_required(self, db, alice_ctx):
        legal = make_folder(db, "Legal")
        with pytest.raises(ForbiddenError):
            FolderService(db).get_folder_contents(legal.id, alice_ctx)
        assert _denials(db)[0].entity_id == str(legal.id)

    def test_root_listing_filters_by_view(self, db, alice_ctx, user_role):
        legal = make_folder(db, "Legal")
        make_folder(db, "Finance")
        make_grant(db, legal, user_role, int(VIEW_ONLY))
        assert [f.name for f in FolderService(db).list_root_folders(alice_ctx)] == ["Legal"]
