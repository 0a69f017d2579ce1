"""Authentication API endpoints.

Public endpoints:
    POST /api/auth/login            — authenticate and receive JWT (always 200)

Authenticated endpoints:
    POST /api/auth/logout           — record the logout
    GET  /api/auth/me               — current user
    POST /api/auth/change-password  — change own password
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, client_context, require_auth
from ..database import get_db
from ..schemas import (
    ApiResponse,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    UserResponse,
    failure,
    ok,
)
from ..services import auth_service, identity_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=ApiResponse[LoginResponse],
    summary="Authenticate and receive JWT",
    description="Always answers 200; failures carry isSuccess=false and a generic message.",
)
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(client_context),
):
    result = auth_service.login(db, body.username, body.password, context)
    if not result.success:
        return failure(result.error_message)
    return ok(LoginResponse(
        token=result.token,
        refresh_token=result.refresh_token,
        expires_at=result.expires_at,
        user=UserResponse.from_user(result.user),
    ))


@router.post("/logout", response_model=ApiResponse[None], summary="Log out")
def logout(
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    auth_service.logout(db, auth)
    return ok()


@router.get("/me", response_model=ApiResponse[UserResponse], summary="Get current user")
def get_me(
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return ok(UserResponse.from_user(identity_service.get_user(db, auth.user_id)))


@router.post("/change-password", response_model=ApiResponse[UserResponse], summary="Change own password")
def change_password(
    body: ChangePasswordRequest,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    user = identity_service.change_password(
        db, auth.user_id, body.new_password, auth, current_password=body.current_password
    )
    return ok(UserResponse.from_user(user))
