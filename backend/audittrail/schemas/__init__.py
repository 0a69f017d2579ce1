"""Pydantic schemas for API validation."""

from .common import ApiResponse, CamelModel, PageInfo, failure, ok
from .user import RoleCreate, RoleResponse, UserCreate, UserResponse, RoleChangeRequest
from .auth import LoginRequest, LoginResponse, ChangePasswordRequest
from .file import FileResponse, FileMetadataUpdate, FileDeleteRequest, DownloadUrlResponse
from .folder import FolderCreate, FolderUpdate, FolderResponse, FolderContentsResponse
from .permission import GrantRequest, RevokeRequest, AccessEntryResponse, EffectivePermissionsResponse
from .audit import AuditEntryResponse, AuditPageResponse

__all__ = [
    "ApiResponse",
    "CamelModel",
    "PageInfo",
    "ok",
    "failure",
    "RoleCreate",
    "RoleResponse",
    "UserCreate",
    "UserResponse",
    "RoleChangeRequest",
    "LoginRequest",
    "LoginResponse",
    "ChangePasswordRequest",
    "FileResponse",
    "FileMetadataUpdate",
    "FileDeleteRequest",
    "DownloadUrlResponse",
    "FolderCreate",
    "FolderUpdate",
    "FolderResponse",
    "FolderContentsResponse",
    "GrantRequest",
    "RevokeRequest",
    "AccessEntryResponse",
    "EffectivePermissionsResponse",
    "AuditEntryResponse",
    "AuditPageResponse",
]
