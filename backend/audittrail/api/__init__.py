"""API routes."""

from .auth_routes import router as auth_router
from .users import router as users_router, roles_router
from .folders import router as folders_router
from .files import router as files_router
from .permissions import router as permissions_router
from .audit import router as audit_router

__all__ = [
    "auth_router",
    "users_router",
    "roles_router",
    "folders_router",
    "files_router",
    "permissions_router",
    "audit_router",
]
