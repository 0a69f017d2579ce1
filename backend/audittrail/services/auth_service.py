"""Authentication service — credential checks, lockout policy and session tokens.

All password operations use bcrypt via passlib. Passwords are never stored
or logged in plaintext.

``authenticate`` maintains the lockout counter and the LoginAttempt log
directly rather than through a UnitOfWork: a failed login produces exactly
one audit entry (``UserLoginFailed``, written by ``login``), not an extra
``UserModified`` for the counter bump. Admin lock/unlock go through the
UnitOfWork and are audited as ordinary user modifications.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext, session_id_for
from ..core.config import settings
from ..core.passwords import burn_verification, verify_password
from ..core.token_factory import create_refresh_token, create_token
from ..models.audit_metadata import utcnow
from ..models.user import LoginAttempt, User
from ..repositories.user_repository import LoginAttemptRepository, UserRepository
from . import audit_service
from .change_tracking import UnitOfWork

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Invalid username or password"

REASON_UNKNOWN_USER = "Unknown user"
REASON_DEACTIVATED = "Account deactivated"
REASON_LOCKED = "Account locked"
REASON_BAD_PASSWORD = "Invalid password"


@dataclass
class LoginResult:
    success: bool
    token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    user: Optional[User] = None
    error_message: Optional[str] = None


def _lockout_duration() -> timedelta:
    return timedelta(days=365 * settings.lockout_years)


def record_login_attempt(
    db: Session,
    username: str,
    ip_address: Optional[str],
    is_successful: bool,
    failure_reason: Optional[str] = None,
    user_id: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> LoginAttempt:
    """Append a LoginAttempt row. The caller commits."""
    return LoginAttemptRepository(db).add(LoginAttempt(
        username=username,
        user_id=user_id,
        ip_address=ip_address,
        user_agent=user_agent,
        is_successful=is_successful,
        failure_reason=failure_reason,
        attempt_date=utcnow(),
    ))


def get_failed_login_attempts(db: Session, username: str, period: timedelta) -> int:
    """Failed attempts for *username* within the trailing *period*."""
    return LoginAttemptRepository(db).count_failed_since(username, utcnow() - period)


def authenticate(
    db: Session,
    username: str,
    password: str,
    ip_address: Optional[str],
    user_agent: Optional[str] = None,
) -> Optional[User]:
    """Verify credentials and apply the lockout policy.

    Returns the user on success, None otherwise. A locked or deactivated
    account is refused before its password is checked, so a correct password
    neither unlocks it nor resets the failure counter.
    """
    user = UserRepository(db).get_by_username(username)

    if user is None:
        burn_verification(password)
        record_login_attempt(db, username, ip_address, False, REASON_UNKNOWN_USER, user_agent=user_agent)
        db.commit()
        logger.info("Login refused: unknown user", extra={"username": username})
        return None

    if not user.is_active or user.is_locked:
        reason = REASON_DEACTIVATED if not user.is_active else REASON_LOCKED
        record_login_attempt(db, username, ip_address, False, reason, user.id, user_agent)
        db.commit()
        logger.info("Login refused: %s", reason.lower(), extra={"user_id": user.id})
        return None

    if not verify_password(password, user.password_hash):
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        locked_now = user.failed_login_attempts >= settings.max_failed_login_attempts
        if locked_now:
            user.is_locked = True
            user.lockout_end = utcnow() + _lockout_duration()
        record_login_attempt(db, username, ip_address, False, REASON_BAD_PASSWORD, user.id, user_agent)
        if locked_now:
            audit_service.log(
                db,
                "UserAccountLocked",
                "Lock",
                user_id=user.id,
                username=user.username,
                entity_type="User",
                entity_id=user.id,
                entity_name=user.username,
                ip_address=ip_address,
                user_agent=user_agent,
                result="Warning",
                additional_data={"failed_login_attempts": user.failed_login_attempts},
                commit=False,
            )
            logger.warning(
                "Account locked after %d failed logins", user.failed_login_attempts,
                extra={"user_id": user.id},
            )
        db.commit()
        return None

    user.failed_login_attempts = 0
    user.last_login_date = utcnow()
    user.last_login_ip = ip_address
    record_login_attempt(db, username, ip_address, True, None, user.id, user_agent)
    db.commit()
    return user


def issue_tokens(user: User):
    """Return (token, refresh_token, expires_at) for *user*."""
    token = create_token(
        subject=user.id,
        role=user.role.name if user.role is not None else "",
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_expire_minutes,
        issuer=settings.jwt_issuer,
        username=user.username,
        email=user.email,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
    )
    expires_at = utcnow() + timedelta(minutes=settings.jwt_expire_minutes)
    return token, create_refresh_token(), expires_at


def login(db: Session, username: str, password: str, context: AuthContext) -> LoginResult:
    """Authenticate, audit the outcome and issue tokens on success.

    Failures always carry the same generic message regardless of cause.
    """
    user = authenticate(db, username, password, context.ip_address, context.user_agent)

    if user is None:
        audit_service.log(
            db,
            "UserLoginFailed",
            "Login",
            username=username,
            entity_type="User",
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            result="Failed",
            error_message="Invalid credentials",
        )
        return LoginResult(success=False, error_message=LOGIN_FAILED_MESSAGE)

    token, refresh_token, expires_at = issue_tokens(user)
    audit_service.log(
        db,
        "UserLogin",
        "Login",
        user_id=user.id,
        username=user.username,
        role_name=user.role.name if user.role is not None else None,
        entity_type="User",
        entity_id=user.id,
        entity_name=user.username,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        session_id=session_id_for(token),
    )
    logger.info("User logged in", extra={"user_id": user.id})
    return LoginResult(
        success=True,
        token=token,
        refresh_token=refresh_token,
        expires_at=expires_at,
        user=user,
    )


def logout(db: Session, context: AuthContext) -> Optional[str]:
    """Record the logout. Issued tokens remain valid until they expire."""
    return audit_service.log_for(
        db,
        context,
        "UserLogout",
        "Logout",
        entity_type="User",
        entity_id=context.user_id,
        entity_name=context.username,
    )


def lock_account(db: Session, user_id: str, context: AuthContext) -> User:
    """Administrative lock; lasts until ``unlock_account``."""
    user = UserRepository(db).get_by_id(user_id)
    with UnitOfWork(db, context) as uow:
        uow.track(user)
        user.is_locked = True
        user.lockout_end = utcnow() + _lockout_duration()
        uow.commit()
    logger.info("Account locked by administrator", extra={"user_id": user_id, "by": context.user_id})
    return user


def unlock_account(db: Session, user_id: str, context: AuthContext) -> User:
    """Clear the lock, its end date and the failure counter."""
    user = UserRepository(db).get_by_id(user_id)
    with UnitOfWork(db, context) as uow:
        uow.track(user)
        user.is_locked = False
        user.lockout_end = None
        user.failed_login_attempts = 0
        uow.commit()
    logger.info("Account unlocked", extra={"user_id": user_id, "by": context.user_id})
    return user
