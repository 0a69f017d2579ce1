"""Seed the identity store on first startup.

Creates the Administrator and User roles when they are missing and, if no
users exist and ``BOOTSTRAP_ADMIN_*`` is configured, one administrator
account. Idempotent: every step skips what already exists.
"""

import logging

from sqlalchemy.orm import Session

from .auth import AuthContext
from .config import settings

logger = logging.getLogger(__name__)

DEFAULT_USER_ROLE = "User"


def seed_roles(db: Session) -> int:
    """Create the default roles. Returns how many were created."""
    from ..services import identity_service

    context = AuthContext.system()
    created = 0
    defaults = [
        (settings.administrator_role_name, "Full administrative access"),
        (DEFAULT_USER_ROLE, "Standard user"),
    ]
    for name, description in defaults:
        if identity_service.get_role_by_name(db, name) is None:
            identity_service.create_role(db, name, context, description=description)
            created += 1
    if created:
        logger.info("Seeded %d role(s)", created)
    return created


def seed_bootstrap_admin(db: Session) -> bool:
    """Create the configured first administrator if the user table is empty."""
    from ..repositories.user_repository import UserRepository
    from ..services import identity_service

    if not (settings.bootstrap_admin_username and settings.bootstrap_admin_password):
        logger.debug("No bootstrap administrator configured")
        return False
    if UserRepository(db).count() > 0:
        return False

    role = identity_service.get_role_by_name(db, settings.administrator_role_name)
    identity_service.create_user(
        db,
        username=settings.bootstrap_admin_username,
        email=settings.bootstrap_admin_email or f"{settings.bootstrap_admin_username}@localhost",
        password=settings.bootstrap_admin_password,
        role_id=role.id,
        context=AuthContext.system(),
        must_change_password=True,
    )
    logger.info("Created bootstrap administrator '%s'", settings.bootstrap_admin_username)
    return True


def seed_identity(db: Session) -> None:
    seed_roles(db)
    seed_bootstrap_admin(db)
