"""Repository layer for data access."""

from .base import BaseRepository
from .user_repository import UserRepository, RoleRepository, LoginAttemptRepository
from .category_repository import CategoryRepository, CategoryAccessRepository
from .file_repository import FileRepository
from .audit_repository import AuditRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "RoleRepository",
    "LoginAttemptRepository",
    "CategoryRepository",
    "CategoryAccessRepository",
    "FileRepository",
    "AuditRepository",
]
