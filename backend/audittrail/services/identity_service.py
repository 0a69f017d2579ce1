"""User and role administration.

Every mutation is staged on a ``UnitOfWork`` so it lands in the audit trail
as RoleCreated / UserCreated / UserModified. Users are never hard-deleted.
"""

import logging
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.config import settings
from ..core.passwords import hash_password, salt_of, verify_password
from ..exceptions import ValidationError
from ..models.audit_metadata import utcnow
from ..models.user import Role, User
from ..repositories.user_repository import RoleRepository, UserRepository
from .change_tracking import UnitOfWork

logger = logging.getLogger(__name__)

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.@-]{3,100}$")


def _validate_password(password: str) -> None:
    if len(password or "") < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters",
            field="password",
        )


def create_role(db: Session, name: str, context: AuthContext, description: Optional[str] = None) -> Role:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Role name required", field="name")
    repo = RoleRepository(db)
    if repo.get_by_name(name) is not None:
        raise ValidationError(f"Role already exists: {name}", field="name")

    with UnitOfWork(db, context) as uow:
        role = uow.add(Role(name=name, description=description, is_active=True))
        uow.commit()
    logger.info("Role created", extra={"role_id": role.id, "by": context.user_id})
    return role


def get_role_by_name(db: Session, name: str) -> Optional[Role]:
    return RoleRepository(db).get_by_name(name)


def list_roles(db: Session) -> List[Role]:
    return RoleRepository(db).list_all()


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    role_id: int,
    context: AuthContext,
    first_name: str = "",
    last_name: str = "",
    must_change_password: bool = False,
) -> User:
    """Create a user account.

    Raises ValidationError for a malformed or taken username or email, or a
    short password; RoleNotFoundError for an unknown role.
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not _USERNAME_RE.match(username):
        raise ValidationError(
            "Username must be 3-100 characters of letters, digits, '_', '.', '@' or '-'",
            field="username",
        )
    if not email or "@" not in email:
        raise ValidationError("Valid email address required", field="email")
    _validate_password(password)

    users = UserRepository(db)
    if users.get_by_username(username) is not None:
        raise ValidationError("Username already taken", field="username")
    if users.get_by_email(email) is not None:
        raise ValidationError("Email already registered", field="email")
    RoleRepository(db).get_by_id(role_id)

    password_hash = hash_password(password)
    with UnitOfWork(db, context) as uow:
        user = uow.add(User(
            username=username,
            email=email,
            password_hash=password_hash,
            password_salt=salt_of(password_hash),
            first_name=(first_name or "").strip(),
            last_name=(last_name or "").strip(),
            role_id=role_id,
            is_active=True,
            is_locked=False,
            failed_login_attempts=0,
            must_change_password=must_change_password,
            last_password_change_date=utcnow(),
        ))
        uow.commit()

    logger.info("User created", extra={"user_id": user.id, "by": context.user_id})
    return user


def get_user(db: Session, user_id: str) -> User:
    """Raises UserNotFoundError if missing."""
    return UserRepository(db).get_by_id(user_id)


def list_users(db: Session, include_inactive: bool = False) -> List[User]:
    return UserRepository(db).list_users(include_inactive=include_inactive)


def change_password(
    db: Session,
    user_id: str,
    new_password: str,
    context: AuthContext,
    current_password: Optional[str] = None,
) -> User:
    """Set a new password.

    Users changing their own password must supply the current one;
    administrators resetting someone else's need not, and the target must
    then choose a new one at next login.
    """
    user = UserRepository(db).get_by_id(user_id)
    if context.user_id == user.id or current_password is not None:
        if not verify_password(current_password or "", user.password_hash):
            raise ValidationError("Current password is incorrect", field="current_password")
    _validate_password(new_password)

    password_hash = hash_password(new_password)
    with UnitOfWork(db, context) as uow:
        uow.track(user)
        user.password_hash = password_hash
        user.password_salt = salt_of(password_hash)
        user.last_password_change_date = utcnow()
        user.must_change_password = context.user_id != user.id
        uow.commit()
    logger.info("Password changed", extra={"user_id": user.id, "by": context.user_id})
    return user


def deactivate_user(db: Session, user_id: str, context: AuthContext) -> User:
    """Soft-delete: the account can no longer log in, its history stays."""
    user = UserRepository(db).get_by_id(user_id)
    if user.id == context.user_id:
        raise ValidationError("You cannot deactivate your own account", field="user_id")
    with UnitOfWork(db, context) as uow:
        uow.track(user)
        user.is_active = False
        uow.commit()
    logger.info("User deactivated", extra={"user_id": user.id, "by": context.user_id})
    return user


def change_role(db: Session, user_id: str, role_id: int, context: AuthContext) -> User:
    user = UserRepository(db).get_by_id(user_id)
    RoleRepository(db).get_by_id(role_id)
    with UnitOfWork(db, context) as uow:
        uow.track(user)
        user.role_id = role_id
        uow.commit()
    logger.info("User role changed", extra={"user_id": user.id, "role_id": role_id, "by": context.user_id})
    return user
