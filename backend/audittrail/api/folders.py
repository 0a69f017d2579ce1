"""Folder API. Delegates to FolderService; every check happens there.

    GET    /api/folders                — root folders the caller can view
    POST   /api/folders                — create folder
    GET    /api/folders/{id}           — folder
    GET    /api/folders/{id}/contents  — subfolders and current files
    PUT    /api/folders/{id}           — update description / inheritance
    DELETE /api/folders/{id}           — soft delete
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas import (
    ApiResponse,
    FolderContentsResponse,
    FolderCreate,
    FolderResponse,
    FolderUpdate,
    ok,
)
from ..services.folder_service import FolderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["Folders"])


@router.get("", response_model=ApiResponse[List[FolderResponse]])
def list_root_folders(
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    folders = FolderService(db).list_root_folders(auth)
    return ok([FolderResponse.model_validate(f) for f in folders])


@router.post("", response_model=ApiResponse[FolderResponse], status_code=201)
def create_folder(
    body: FolderCreate,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    folder = FolderService(db).create_folder(
        body.name,
        body.parent_id,
        auth,
        description=body.description,
        inherit_parent_permissions=body.inherit_parent_permissions,
        require_explicit_access=body.require_explicit_access,
    )
    return ok(FolderResponse.model_validate(folder))


@router.get("/{folder_id}", response_model=ApiResponse[FolderResponse])
def get_folder(
    folder_id: int,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return ok(FolderResponse.model_validate(FolderService(db).get_folder(folder_id, auth)))


@router.get("/{folder_id}/contents", response_model=ApiResponse[FolderContentsResponse])
def get_folder_contents(
    folder_id: int,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    contents = FolderService(db).get_folder_contents(folder_id, auth)
    return ok(FolderContentsResponse.from_contents(contents))


@router.put("/{folder_id}", response_model=ApiResponse[FolderResponse])
def update_folder(
    folder_id: int,
    body: FolderUpdate,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    folder = FolderService(db).update_folder(
        folder_id,
        auth,
        description=body.description,
        inherit_parent_permissions=body.inherit_parent_permissions,
        require_explicit_access=body.require_explicit_access,
    )
    return ok(FolderResponse.model_validate(folder))


@router.delete("/{folder_id}", response_model=ApiResponse[None])
def delete_folder(
    folder_id: int,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    FolderService(db).delete_folder(folder_id, auth)
    return ok()
