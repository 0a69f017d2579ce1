"""Data access for users, roles and login attempts."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func

from ..exceptions import RoleNotFoundError, UserNotFoundError
from ..models.user import LoginAttempt, Role, User
from .base import BaseRepository


class RoleRepository(BaseRepository[Role]):
    model_class = Role
    not_found_error = RoleNotFoundError

    def get_by_name(self, name: str) -> Optional[Role]:
        """Case-insensitive lookup by role name."""
        return (
            self.db.query(Role)
            .filter(func.lower(Role.name) == name.strip().lower())
            .first()
        )

    def list_all(self) -> List[Role]:
        return self.db.query(Role).order_by(Role.name).all()


class UserRepository(BaseRepository[User]):
    model_class = User
    not_found_error = UserNotFoundError

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    def get_active(self, user_id: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.id == user_id, User.is_active.is_(True))
            .first()
        )

    def list_users(self, include_inactive: bool = False) -> List[User]:
        query = self.db.query(User)
        if not include_inactive:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.username).all()

    def count(self) -> int:
        return self.db.query(User).count()


class LoginAttemptRepository:
    """Append-only log of authentication attempts."""

    def __init__(self, db):
        self.db = db

    def add(self, attempt: LoginAttempt) -> LoginAttempt:
        self.db.add(attempt)
        return attempt

    def count_failed_since(self, username: str, since: datetime) -> int:
        return (
            self.db.query(LoginAttempt)
            .filter(
                LoginAttempt.username == username,
                LoginAttempt.is_successful.is_(False),
                LoginAttempt.attempt_date >= since,
            )
            .count()
        )
