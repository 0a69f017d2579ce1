"""Authentication schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel
from .user import UserResponse


class LoginRequest(CamelModel):
    username: str = Field(..., max_length=100)
    password: str = Field(..., max_length=1024)

    model_config = {
        "json_schema_extra": {
            "examples": [{"username": "alice", "password": "correct horse battery"}]
        }
    }


class LoginResponse(CamelModel):
    token: str
    refresh_token: str
    expires_at: datetime
    user: UserResponse


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: str
