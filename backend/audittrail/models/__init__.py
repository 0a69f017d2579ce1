"""Database models."""

from .audit_metadata import AuditMetadata
from .user import Role, User, LoginAttempt
from .category import FileCategory, CategoryAccess
from .file_record import FileRecord
from .audit import AuditTrailEntry

__all__ = [
    "AuditMetadata",
    "Role", "User", "LoginAttempt",
    "FileCategory", "CategoryAccess",
    "FileRecord",
    "AuditTrailEntry",
]
