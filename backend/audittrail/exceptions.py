"""Custom exception hierarchy for AuditTrail."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Identity errors
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ROLE_NOT_FOUND = "ROLE_NOT_FOUND"

    # Document errors
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    # Infrastructure errors
    DATABASE_ERROR = "DATABASE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"

    # Audit trail errors
    AUDIT_WRITE_FAILED = "AUDIT_WRITE_FAILED"
    AUDIT_IMMUTABLE = "AUDIT_IMMUTABLE"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AuditTrailError(Exception):
    """
    Base exception for all AuditTrail errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the failure envelope returned by the API."""
        return {
            "isSuccess": False,
            "data": None,
            "errorCode": self.error_code.value,
            "errorMessage": self.message,
            "details": self.details,
        }


class UserNotFoundError(AuditTrailError):
    """User not found in the identity store."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User not found: {user_id}",
            ErrorCode.USER_NOT_FOUND,
            status_code=404,
            details={"user_id": str(user_id)}
        )


class RoleNotFoundError(AuditTrailError):
    """Role not found in the identity store."""

    def __init__(self, role_id):
        super().__init__(
            f"Role not found: {role_id}",
            ErrorCode.ROLE_NOT_FOUND,
            status_code=404,
            details={"role_id": str(role_id)}
        )


class FolderNotFoundError(AuditTrailError):
    """Folder (file category) not found or no longer active."""

    def __init__(self, folder_id):
        super().__init__(
            f"Folder not found: {folder_id}",
            ErrorCode.FOLDER_NOT_FOUND,
            status_code=404,
            details={"folder_id": str(folder_id)}
        )


class FileRecordNotFoundError(AuditTrailError):
    """File record not found or soft-deleted."""

    def __init__(self, file_id: str):
        super().__init__(
            f"File not found: {file_id}",
            ErrorCode.FILE_NOT_FOUND,
            status_code=404,
            details={"file_id": str(file_id)}
        )


class ValidationError(AuditTrailError):
    """Validation failed for user input. Raised before any mutation."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(AuditTrailError):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(AuditTrailError):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class StorageError(AuditTrailError):
    """Blob storage operation failed.

    The message shown to callers is always generic; the underlying cause is
    kept on ``original_error`` for logging only.
    """

    def __init__(self, operation: str, original_error: Optional[Exception] = None):
        super().__init__(
            "File storage is currently unavailable",
            ErrorCode.STORAGE_ERROR,
            status_code=503,
            details={"operation": operation},
        )
        self.original_error = original_error


class DatabaseError(AuditTrailError):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
        )
        self.original_error = original_error


class AuditWriteError(AuditTrailError):
    """Audit entries could not be written and the fail-closed policy is active."""

    def __init__(self, original_error: Optional[Exception] = None):
        super().__init__(
            "Operation aborted: audit trail could not be written",
            ErrorCode.AUDIT_WRITE_FAILED,
            status_code=500,
        )
        self.original_error = original_error


class ImmutableAuditError(AuditTrailError):
    """Something attempted to update or delete an existing audit trail entry."""

    def __init__(self, operation: str = "modify"):
        super().__init__(
            f"Audit trail entries are immutable; cannot {operation}",
            ErrorCode.AUDIT_IMMUTABLE,
            status_code=500,
            details={"operation": operation},
        )
