"""Permission engine — resolves a user's effective mask on a folder or file.

Resolution for (user, folder):

    1. Missing or inactive user (or inactive role) → NONE.
    2. OR of every live ACL entry on the folder that targets the user's role
       or the user directly.
    3. OR of inherited entries: if the folder has a parent and inherits, walk
       up from the parent, taking entries marked ``inherit_to_subfolders``.
       The walk continues past an ancestor only while that ancestor itself
       has a parent and inherits.

A file's mask is its folder's mask. Lookups never raise: database failures
are logged and resolve to NONE / False. Grants and revocations raise typed
errors and are committed through a ``UnitOfWork`` so every change is audited.
"""

import logging
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.permissions import ALL_BITS, FilePermissions, is_valid_mask
from ..exceptions import ValidationError
from ..models.audit_metadata import utcnow
from ..models.category import CategoryAccess, FileCategory
from ..models.user import User
from ..repositories.category_repository import CategoryAccessRepository, CategoryRepository
from ..repositories.file_repository import FileRepository
from ..repositories.user_repository import RoleRepository, UserRepository
from .change_tracking import UnitOfWork

logger = logging.getLogger(__name__)

NONE = FilePermissions.NONE


def _combine(masks: List[int]) -> FilePermissions:
    result = NONE
    for mask in masks:
        result |= FilePermissions(mask & ALL_BITS)
    return result


class PermissionService:
    """Hierarchical, role-based ACL resolution and administration.

    Public methods:
        get_folder_permissions    -- direct + inherited mask for a folder
        get_inherited_permissions -- ancestor contribution only
        get_file_permissions      -- the file's folder mask
        effective_permissions     -- dispatch on an opaque target id
        has_permission / has_folder_permission / has_file_permission
        can_delete_folder         -- root folders are Administrator-only
        list_folder_access        -- active ACL entries on a folder
        grant_or_update / update_permissions / revoke
    """

    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.roles = RoleRepository(db)
        self.folders = CategoryRepository(db)
        self.acl = CategoryAccessRepository(db)
        self.files = FileRepository(db)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _active_user(self, user_id: Optional[str]) -> Optional[User]:
        user = self.users.get_by_id_optional(user_id)
        if user is None or not user.is_active:
            return None
        if user.role is None or not user.role.is_active:
            return None
        return user

    def get_folder_permissions(self, category_id: int, user_id: Optional[str]) -> FilePermissions:
        try:
            user = self._active_user(user_id)
            if user is None:
                return NONE
            folder = self.folders.get_by_id_optional(category_id)
            if folder is None:
                return NONE
            now = utcnow()
            direct = _combine(self.acl.effective_masks(folder.id, user.role_id, user.id, now))
            return direct | self._inherited(folder, user, now)
        except SQLAlchemyError as e:
            logger.error(
                "Permission lookup failed for folder %s: %s", category_id, e,
                extra={"user_id": user_id},
            )
            return NONE

    def get_inherited_permissions(self, category_id: int, user_id: Optional[str]) -> FilePermissions:
        try:
            user = self._active_user(user_id)
            folder = self.folders.get_by_id_optional(category_id)
            if user is None or folder is None:
                return NONE
            return self._inherited(folder, user, utcnow())
        except SQLAlchemyError as e:
            logger.error("Inherited permission lookup failed for folder %s: %s", category_id, e)
            return NONE

    def _inherited(self, folder: FileCategory, user: User, now: datetime) -> FilePermissions:
        if folder.parent_id is None or not folder.inherit_parent_permissions:
            return NONE

        result = NONE
        seen = {folder.id}
        ancestor = self.folders.get_by_id_optional(folder.parent_id)
        while ancestor is not None and ancestor.id not in seen:
            seen.add(ancestor.id)
            result |= _combine(self.acl.effective_masks(
                ancestor.id, user.role_id, user.id, now, inheritable_only=True,
            ))
            if ancestor.parent_id is None or not ancestor.inherit_parent_permissions:
                break
            ancestor = self.folders.get_by_id_optional(ancestor.parent_id)
        return result

    def get_file_permissions(self, file_id: str, user_id: Optional[str]) -> FilePermissions:
        try:
            record = self.files.get_any(file_id)
        except SQLAlchemyError as e:
            logger.error("File permission lookup failed for %s: %s", file_id, e)
            return NONE
        if record is None or record.category_id is None:
            return NONE
        return self.get_folder_permissions(record.category_id, user_id)

    def effective_permissions(self, target_id: Union[int, str], user_id: Optional[str]) -> FilePermissions:
        """Integer ids (or all-digit strings) name folders; anything else names a file."""
        if isinstance(target_id, int):
            return self.get_folder_permissions(target_id, user_id)
        target = str(target_id)
        if target.isdigit():
            return self.get_folder_permissions(int(target), user_id)
        return self.get_file_permissions(target, user_id)

    @staticmethod
    def has_permission(mask: int, permission: FilePermissions) -> bool:
        """True when every bit of *permission* is set in *mask*. NONE is never held."""
        if int(permission) == 0:
            return False
        return (int(mask) & int(permission)) == int(permission)

    def has_folder_permission(self, category_id: int, user_id: Optional[str], permission: FilePermissions) -> bool:
        return self.has_permission(self.get_folder_permissions(category_id, user_id), permission)

    def has_file_permission(self, file_id: str, user_id: Optional[str], permission: FilePermissions) -> bool:
        return self.has_permission(self.get_file_permissions(file_id, user_id), permission)

    def can_delete_folder(self, category_id: int, user_id: Optional[str]) -> bool:
        """Root folders may only be deleted by the Administrator role; others need Delete."""
        try:
            folder = self.folders.get_by_id_optional(category_id)
            if folder is None:
                return False
            if folder.is_root:
                user = self._active_user(user_id)
                if user is None:
                    return False
                return user.role.name.lower() == settings.administrator_role_name.lower()
        except SQLAlchemyError as e:
            logger.error("Delete check failed for folder %s: %s", category_id, e)
            return False
        return self.has_folder_permission(category_id, user_id, FilePermissions.DELETE)

    def list_folder_access(self, category_id: int) -> List[CategoryAccess]:
        try:
            return self.acl.list_active(category_id)
        except SQLAlchemyError as e:
            logger.error("ACL listing failed for folder %s: %s", category_id, e)
            return []

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def grant_or_update(
        self,
        category_id: int,
        role_id: int,
        permissions: int,
        context,
        inherit_to_subfolders: Optional[bool] = None,
        inherit_to_files: Optional[bool] = None,
        expiry_date: Optional[datetime] = None,
    ) -> CategoryAccess:
        """Set the (folder, role) mask, updating the active entry in place when one exists.

        Raises ValidationError for masks outside 1–63, FolderNotFoundError and
        RoleNotFoundError for unknown targets.
        """
        permissions = int(permissions)
        if permissions == 0 or not is_valid_mask(permissions):
            raise ValidationError(
                f"Permission mask must be between 1 and {ALL_BITS}", field="permissions"
            )
        self.folders.get_active(category_id)
        self.roles.get_by_id(role_id)

        with UnitOfWork(self.db, context) as uow:
            now = utcnow()
            entry = self.acl.get_active_for_role(category_id, role_id)
            if entry is not None and self.acl.is_expired(entry, now):
                # Expired entries are retired, not revived.
                uow.track(entry)
                entry.is_active = False
                entry.revoked_by = context.user_id
                entry.revoked_date = now
                entry.revoke_reason = "Expired; superseded by new grant"
                entry = None
            if entry is not None:
                uow.track(entry)
                entry.permissions = permissions
                entry.granted_by = context.user_id
                entry.granted_date = now
                if inherit_to_subfolders is not None:
                    entry.inherit_to_subfolders = inherit_to_subfolders
                if inherit_to_files is not None:
                    entry.inherit_to_files = inherit_to_files
                if expiry_date is not None:
                    entry.expiry_date = expiry_date
            else:
                entry = uow.add(CategoryAccess(
                    category_id=category_id,
                    role_id=role_id,
                    permissions=permissions,
                    inherit_to_subfolders=True if inherit_to_subfolders is None else inherit_to_subfolders,
                    inherit_to_files=True if inherit_to_files is None else inherit_to_files,
                    granted_by=context.user_id,
                    granted_date=now,
                    expiry_date=expiry_date,
                    is_active=True,
                ))
            uow.commit()

        logger.info(
            "Granted %s on folder %s to role %s", permissions, category_id, role_id,
            extra={"granted_by": context.user_id},
        )
        return entry

    def update_permissions(self, category_id: int, role_id: int, permissions: int, context, **options) -> Optional[CategoryAccess]:
        """As ``grant_or_update``, except a zero mask revokes the entry."""
        if int(permissions) == 0:
            self.revoke(category_id, role_id, context, reason="Permissions set to none")
            return None
        return self.grant_or_update(category_id, role_id, permissions, context, **options)

    def revoke(self, category_id: int, role_id: int, context, reason: Optional[str] = None) -> bool:
        """Deactivate the active (folder, role) entry. The row is kept for history.

        Returns False when there was nothing to revoke.
        """
        entry = self.acl.get_active_for_role(category_id, role_id)
        if entry is None:
            return False

        with UnitOfWork(self.db, context) as uow:
            uow.track(entry)
            entry.is_active = False
            entry.revoked_by = context.user_id
            entry.revoked_date = utcnow()
            entry.revoke_reason = reason
            uow.commit()

        logger.info(
            "Revoked access on folder %s from role %s", category_id, role_id,
            extra={"revoked_by": context.user_id},
        )
        return True
