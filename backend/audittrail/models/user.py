"""Identity store models: Role, User and LoginAttempt.

Users reference their role by ``role_id`` plus a read-only many-to-one
``role`` for convenience; roles hold no collection of users. Users are never
hard-deleted — deactivation flips ``is_active``.
"""

import uuid

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, ForeignKey, Index
from sqlalchemy.orm import composite, relationship

from ..database import Base
from .audit_metadata import AuditMetadata, utcnow


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Role(Base):
    """Named role. ACL entries and users point at it by id."""

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_by = Column(String(36), nullable=True)
    modified_at = Column(DateTime(timezone=True), nullable=True)
    modified_by = Column(String(36), nullable=True)
    audit = composite(AuditMetadata, created_at, created_by, modified_at, modified_by)


class User(Base):
    """User account with lockout state.

    ``password_hash`` is a bcrypt hash with its salt embedded; ``password_salt``
    keeps the salt segment separately for reporting and is never used for
    verification.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_role_id", "role_id"),
    )

    id = Column(String(36), primary_key=True, default=_new_uuid)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    password_salt = Column(String(64), nullable=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    # One-way, read-only; roles never point back at their users.
    role = relationship("Role", lazy="joined", viewonly=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    lockout_end = Column(DateTime(timezone=True), nullable=True)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    must_change_password = Column(Boolean, nullable=False, default=False)
    last_password_change_date = Column(DateTime(timezone=True), nullable=True)
    last_login_date = Column(DateTime(timezone=True), nullable=True)
    last_login_ip = Column(String(45), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_by = Column(String(36), nullable=True)
    modified_at = Column(DateTime(timezone=True), nullable=True)
    modified_by = Column(String(36), nullable=True)
    audit = composite(AuditMetadata, created_at, created_by, modified_at, modified_by)


class LoginAttempt(Base):
    """Append-only record of every authentication attempt.

    Not routed through the unit of work: the audit trail gets its own
    UserLogin / UserLoginFailed entries from the auth service.
    """

    __tablename__ = "login_attempts"
    __table_args__ = (
        Index("ix_login_attempts_username_date", "username", "attempt_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False)
    user_id = Column(String(36), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    is_successful = Column(Boolean, nullable=False, default=False)
    failure_reason = Column(String(255), nullable=True)
    attempt_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
