"""Folder operations: create, soft-delete, update and browse.

Every operation checks the caller's effective permissions first and stages
its mutations on a ``UnitOfWork``, so each change reaches the audit trail in
the same transaction.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.permissions import FULL_CONTROL, FilePermissions
from ..exceptions import ForbiddenError, ValidationError
from ..models.audit_metadata import utcnow
from ..models.category import CategoryAccess, FileCategory
from ..models.file_record import FileRecord
from ..repositories.category_repository import CategoryRepository
from ..repositories.file_repository import FileRepository
from . import audit_service
from .change_tracking import UnitOfWork
from .permission_service import PermissionService

logger = logging.getLogger(__name__)

MAX_FOLDER_NAME_LENGTH = 255


@dataclass
class FolderContents:
    folder: FileCategory
    permissions: FilePermissions
    subfolders: List[FileCategory] = field(default_factory=list)
    files: List[FileRecord] = field(default_factory=list)


def validate_folder_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Folder name required", field="name")
    if "/" in name or "\\" in name:
        raise ValidationError("Folder name cannot contain slashes", field="name")
    if len(name) > MAX_FOLDER_NAME_LENGTH:
        raise ValidationError(
            f"Folder name cannot exceed {MAX_FOLDER_NAME_LENGTH} characters", field="name"
        )
    return name


def build_path(name: str, parent: Optional[FileCategory]) -> str:
    """``/Name/`` for roots, ``{parent.path}Name/`` below a parent."""
    if parent is None:
        return f"/{name}/"
    return f"{parent.path}{name}/"


class FolderService:
    """All folder operations behind a simple interface.

    Public methods:
        create_folder       -- root (Administrator only) or child (Upload on parent)
        update_folder       -- description and inheritance flags (ModifyMetadata)
        delete_folder       -- soft delete of an empty folder
        get_folder          -- single folder (View)
        get_folder_contents -- subfolders and current files (View)
        list_root_folders   -- roots the caller can View
    """

    def __init__(self, db: Session):
        self.db = db
        self.folders = CategoryRepository(db)
        self.files = FileRepository(db)
        self.permissions = PermissionService(db)

    def _require(self, folder: FileCategory, context: AuthContext, permission: FilePermissions, action: str) -> FilePermissions:
        mask = self.permissions.get_folder_permissions(folder.id, context.user_id)
        if not self.permissions.has_permission(mask, permission):
            audit_service.log_denied(self.db, context, action, "FileCategory", str(folder.id), folder.name)
            raise ForbiddenError(f"{permission.name.title().replace('_', ' ')} permission required on this folder")
        return mask

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_folder(
        self,
        name: str,
        parent_id: Optional[int],
        context: AuthContext,
        description: Optional[str] = None,
        inherit_parent_permissions: bool = True,
        require_explicit_access: bool = False,
    ) -> FileCategory:
        """Create a folder.

        Root folders may only be created by Administrators; the creator's role
        receives FullControl on the new root. Child folders require Upload on
        the parent. Raises ValidationError on a bad or duplicate name.
        """
        name = validate_folder_name(name)

        parent = None
        if parent_id is not None:
            parent = self.folders.get_active(parent_id)
            self._require(parent, context, FilePermissions.UPLOAD, "CreateFolder")
        elif not context.is_admin:
            audit_service.log_denied(self.db, context, "CreateFolder", "FileCategory", None, name)
            raise ForbiddenError("Only administrators can create root folders")

        path = build_path(name, parent)
        if self.folders.get_active_by_path(path) is not None:
            raise ValidationError(f"A folder named '{name}' already exists here", field="name")

        with UnitOfWork(self.db, context) as uow:
            folder = uow.add(FileCategory(
                name=name,
                path=path,
                parent_id=parent.id if parent is not None else None,
                description=description,
                is_active=True,
                inherit_parent_permissions=inherit_parent_permissions,
                require_explicit_access=require_explicit_access,
                is_system=False,
            ))
            if parent is None and context.role_id is not None:
                self.db.flush()
                uow.add(CategoryAccess(
                    category_id=folder.id,
                    role_id=context.role_id,
                    permissions=int(FULL_CONTROL),
                    inherit_to_subfolders=True,
                    inherit_to_files=True,
                    granted_by=context.user_id,
                    granted_date=utcnow(),
                    is_active=True,
                ))
            uow.commit()

        logger.info("Folder created", extra={"folder_id": folder.id, "path": path, "by": context.user_id})
        return folder

    def update_folder(
        self,
        folder_id: int,
        context: AuthContext,
        description: Optional[str] = None,
        inherit_parent_permissions: Optional[bool] = None,
        require_explicit_access: Optional[bool] = None,
    ) -> FileCategory:
        folder = self.folders.get_active(folder_id)
        self._require(folder, context, FilePermissions.MODIFY_METADATA, "UpdateFolder")

        with UnitOfWork(self.db, context) as uow:
            uow.track(folder)
            if description is not None:
                folder.description = description
            if inherit_parent_permissions is not None:
                folder.inherit_parent_permissions = inherit_parent_permissions
            if require_explicit_access is not None:
                folder.require_explicit_access = require_explicit_access
            uow.commit()
        return folder

    def delete_folder(self, folder_id: int, context: AuthContext) -> None:
        """Soft-delete an empty folder.

        Root folders need the Administrator role, others the Delete bit.
        Folders that still hold active subfolders or current files are refused.
        """
        folder = self.folders.get_active(folder_id)
        if not self.permissions.can_delete_folder(folder.id, context.user_id):
            audit_service.log_denied(self.db, context, "DeleteFolder", "FileCategory", str(folder.id), folder.name)
            raise ForbiddenError("You do not have permission to delete this folder")

        if self.folders.list_children(folder.id):
            raise ValidationError("Folder still contains subfolders", field="folder_id")
        if self.files.count_current_in_folder(folder.id):
            raise ValidationError("Folder still contains files", field="folder_id")

        with UnitOfWork(self.db, context) as uow:
            uow.track(folder)
            folder.is_active = False
            uow.commit()
        logger.info("Folder deleted", extra={"folder_id": folder_id, "by": context.user_id})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_folder(self, folder_id: int, context: AuthContext) -> FileCategory:
        folder = self.folders.get_active(folder_id)
        self._require(folder, context, FilePermissions.VIEW, "ViewFolder")
        return folder

    def get_folder_contents(self, folder_id: int, context: AuthContext) -> FolderContents:
        folder = self.folders.get_active(folder_id)
        mask = self._require(folder, context, FilePermissions.VIEW, "ViewFolder")
        return FolderContents(
            folder=folder,
            permissions=mask,
            subfolders=self.folders.list_children(folder.id),
            files=self.files.list_current_in_folder(folder.id),
        )

    def list_root_folders(self, context: AuthContext) -> List[FileCategory]:
        return [
            folder for folder in self.folders.list_roots()
            if self.permissions.has_folder_permission(folder.id, context.user_id, FilePermissions.VIEW)
        ]
