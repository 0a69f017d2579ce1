"""Business logic services."""

from .file_service import FileService
from .folder_service import FolderService
from .permission_service import PermissionService

__all__ = ["FileService", "FolderService", "PermissionService"]
