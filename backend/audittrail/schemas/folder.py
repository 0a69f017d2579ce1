"""Folder schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.permissions import permission_names
from .common import CamelModel
from .file import FileResponse


class FolderCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[int] = None
    description: Optional[str] = None
    inherit_parent_permissions: bool = True
    require_explicit_access: bool = False


class FolderUpdate(CamelModel):
    description: Optional[str] = None
    inherit_parent_permissions: Optional[bool] = None
    require_explicit_access: Optional[bool] = None


class FolderResponse(CamelModel):
    id: int
    name: str
    path: str
    parent_id: Optional[int] = None
    description: Optional[str] = None
    inherit_parent_permissions: bool
    require_explicit_access: bool
    is_system: bool
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None


class FolderContentsResponse(CamelModel):
    folder: FolderResponse
    permissions: int
    permission_names: List[str]
    subfolders: List[FolderResponse]
    files: List[FileResponse]

    @classmethod
    def from_contents(cls, contents) -> "FolderContentsResponse":
        return cls(
            folder=FolderResponse.model_validate(contents.folder),
            permissions=int(contents.permissions),
            permission_names=permission_names(contents.permissions),
            subfolders=[FolderResponse.model_validate(f) for f in contents.subfolders],
            files=[FileResponse.model_validate(f) for f in contents.files],
        )
