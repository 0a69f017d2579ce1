"""Permission administration API.

    GET    /api/permissions/folders/{folderId}                 — active ACL entries (Admin bit)
    GET    /api/permissions/folders/{folderId}/roles/{roleId}  — one role's entry (Admin bit)
    POST   /api/permissions/folders/{folderId}/roles/{roleId}  — grant or update (Admin bit)
    DELETE /api/permissions/folders/{folderId}/roles/{roleId}  — revoke (Admin bit)
    GET    /api/permissions/effective/{targetId}               — caller's mask on a folder or file

Managing a folder's ACL needs the Admin permission bit on it, or the
Administrator role.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..core.permissions import FilePermissions, permission_names
from ..database import get_db
from ..exceptions import ForbiddenError
from ..repositories.category_repository import CategoryAccessRepository, CategoryRepository
from ..schemas import (
    AccessEntryResponse,
    ApiResponse,
    EffectivePermissionsResponse,
    GrantRequest,
    RevokeRequest,
    ok,
)
from ..services import audit_service
from ..services.permission_service import PermissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/permissions", tags=["Permissions"])


def _require_folder_admin(service: PermissionService, folder_id: int, auth: AuthContext) -> None:
    folder = CategoryRepository(service.db).get_active(folder_id)
    if auth.is_admin:
        return
    if not service.has_folder_permission(folder.id, auth.user_id, FilePermissions.ADMIN):
        audit_service.log_denied(service.db, auth, "ManagePermissions", "FileCategory", str(folder.id), folder.name)
        raise ForbiddenError("Admin permission required on this folder")


@router.get("/folders/{folder_id}", response_model=ApiResponse[List[AccessEntryResponse]])
def list_folder_access(
    folder_id: int,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    service = PermissionService(db)
    _require_folder_admin(service, folder_id, auth)
    return ok([AccessEntryResponse.from_entry(e) for e in service.list_folder_access(folder_id)])


@router.get("/folders/{folder_id}/roles/{role_id}", response_model=ApiResponse[Optional[AccessEntryResponse]])
def get_role_access(
    folder_id: int,
    role_id: int,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    service = PermissionService(db)
    _require_folder_admin(service, folder_id, auth)
    entry = CategoryAccessRepository(db).get_active_for_role(folder_id, role_id)
    return ok(AccessEntryResponse.from_entry(entry) if entry is not None else None)


@router.post("/folders/{folder_id}/roles/{role_id}", response_model=ApiResponse[Optional[AccessEntryResponse]])
def grant_role_access(
    folder_id: int,
    role_id: int,
    body: GrantRequest,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Grant or update the role's mask. A zero mask revokes the entry."""
    service = PermissionService(db)
    _require_folder_admin(service, folder_id, auth)
    entry = service.update_permissions(
        folder_id,
        role_id,
        body.permissions,
        auth,
        inherit_to_subfolders=body.inherit_to_subfolders,
        inherit_to_files=body.inherit_to_files,
        expiry_date=body.expiry_date,
    )
    return ok(AccessEntryResponse.from_entry(entry) if entry is not None else None)


@router.delete("/folders/{folder_id}/roles/{role_id}", response_model=ApiResponse[bool])
def revoke_role_access(
    folder_id: int,
    role_id: int,
    body: Optional[RevokeRequest] = Body(None),
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    service = PermissionService(db)
    _require_folder_admin(service, folder_id, auth)
    revoked = service.revoke(folder_id, role_id, auth, reason=body.reason if body else None)
    return ok(revoked)


@router.get("/effective/{target_id}", response_model=ApiResponse[EffectivePermissionsResponse])
def effective_permissions(
    target_id: str,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    mask = PermissionService(db).effective_permissions(target_id, auth.user_id)
    return ok(EffectivePermissionsResponse(
        target_id=target_id,
        permissions=int(mask),
        permission_names=permission_names(mask),
    ))
