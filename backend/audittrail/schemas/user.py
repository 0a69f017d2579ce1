"""User and role schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class RoleResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool


class RoleCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class UserResponse(CamelModel):
    """Public view of a user. Never includes password material."""
    id: str
    username: str
    email: str
    first_name: str = ""
    last_name: str = ""
    role_id: int
    role_name: Optional[str] = None
    is_active: bool
    is_locked: bool
    must_change_password: bool = False
    last_login_date: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        response = cls.model_validate(user)
        response.role_name = user.role.name if user.role is not None else None
        return response


class UserCreate(CamelModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., max_length=255)
    password: str
    role_id: int
    first_name: str = ""
    last_name: str = ""
    must_change_password: bool = False


class RoleChangeRequest(CamelModel):
    role_id: int
