"""Authentication module — request-scoped caller context and FastAPI dependencies.

Public interface:
    ``AuthContext``    — who is acting, from where. Passed explicitly into every
                         permission check and audit write; there is no global
                         "current user".
    ``client_context`` — anonymous context carrying only IP and user agent
                         (used by login).
    ``require_auth``   — returns an AuthContext for a valid bearer token or raises 401.
    ``require_admin``  — as require_auth, raises 403 unless the caller holds the
                         Administrator role.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .token_factory import decode_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Resolved caller identity for one request.

    ``user_id`` is None for unauthenticated callers (e.g. during login) and
    for system-initiated work.
    """

    user_id: Optional[str] = None
    username: Optional[str] = None
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return (self.role_name or "").lower() == settings.administrator_role_name.lower()

    @classmethod
    def system(cls) -> "AuthContext":
        """Context for startup tasks such as seeding."""
        return cls(username="system", role_name="System")

    @classmethod
    def for_user(
        cls,
        user,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> "AuthContext":
        return cls(
            user_id=user.id,
            username=user.username,
            role_id=user.role_id,
            role_name=user.role.name if user.role is not None else None,
            ip_address=ip_address,
            user_agent=user_agent,
            session_id=session_id,
        )


def client_ip(request: Request) -> str:
    """Caller IP, honouring ``X-Forwarded-For`` when behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def _user_agent(request: Request) -> Optional[str]:
    ua = request.headers.get("user-agent")
    return ua[:500] if ua else None


def session_id_for(token: str) -> str:
    """Stable per-token identifier; the token itself never reaches the audit trail."""
    return hashlib.sha256(token.encode()).hexdigest()[:32]


def client_context(request: Request) -> AuthContext:
    """Anonymous context carrying only network details."""
    return AuthContext(ip_address=client_ip(request), user_agent=_user_agent(request))


def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Require a valid JWT for an active, unlocked user and return the caller's context."""
    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
    )
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    from ..repositories.user_repository import UserRepository

    user = UserRepository(db).get_by_id_optional(payload.sub)
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    if user.is_locked:
        raise AuthenticationError("Account is locked")

    return AuthContext.for_user(
        user,
        ip_address=client_ip(request),
        user_agent=_user_agent(request),
        session_id=session_id_for(credentials.credentials),
    )


def require_admin(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require the authenticated user to hold the Administrator role. Raises 403 otherwise."""
    if not auth.is_admin:
        raise ForbiddenError("Administrator access required")
    return auth
