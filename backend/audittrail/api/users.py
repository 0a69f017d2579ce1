"""User and role administration API (Administrator only).

    GET  /api/users                      — list users
    POST /api/users                      — create user
    GET  /api/users/{user_id}            — get user
    PUT  /api/users/{user_id}/role       — change role
    PUT  /api/users/{user_id}/deactivate — deactivate
    PUT  /api/users/{user_id}/lock       — lock account
    PUT  /api/users/{user_id}/unlock     — unlock account
    PUT  /api/users/{user_id}/password   — reset password
    GET  /api/roles                      — list roles
    POST /api/roles                      — create role
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin
from ..database import get_db
from ..schemas import (
    ApiResponse,
    ChangePasswordRequest,
    RoleChangeRequest,
    RoleCreate,
    RoleResponse,
    UserCreate,
    UserResponse,
    ok,
)
from ..services import auth_service, identity_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])
roles_router = APIRouter(prefix="/api/roles", tags=["Users"])


@router.get("", response_model=ApiResponse[List[UserResponse]])
def list_users(
    include_inactive: bool = Query(False, alias="includeInactive"),
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    users = identity_service.list_users(db, include_inactive=include_inactive)
    return ok([UserResponse.from_user(u) for u in users])


@router.post("", response_model=ApiResponse[UserResponse], status_code=201)
def create_user(
    body: UserCreate,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = identity_service.create_user(
        db,
        username=body.username,
        email=body.email,
        password=body.password,
        role_id=body.role_id,
        context=auth,
        first_name=body.first_name,
        last_name=body.last_name,
        must_change_password=body.must_change_password,
    )
    return ok(UserResponse.from_user(user))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
def get_user(
    user_id: str,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ok(UserResponse.from_user(identity_service.get_user(db, user_id)))


@router.put("/{user_id}/role", response_model=ApiResponse[UserResponse])
def change_role(
    user_id: str,
    body: RoleChangeRequest,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = identity_service.change_role(db, user_id, body.role_id, auth)
    return ok(UserResponse.from_user(user))


@router.put("/{user_id}/deactivate", response_model=ApiResponse[UserResponse])
def deactivate_user(
    user_id: str,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ok(UserResponse.from_user(identity_service.deactivate_user(db, user_id, auth)))


@router.put("/{user_id}/lock", response_model=ApiResponse[UserResponse])
def lock_user(
    user_id: str,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ok(UserResponse.from_user(auth_service.lock_account(db, user_id, auth)))


@router.put("/{user_id}/unlock", response_model=ApiResponse[UserResponse])
def unlock_user(
    user_id: str,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ok(UserResponse.from_user(auth_service.unlock_account(db, user_id, auth)))


@router.put("/{user_id}/password", response_model=ApiResponse[UserResponse])
def reset_password(
    user_id: str,
    body: ChangePasswordRequest,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = identity_service.change_password(
        db, user_id, body.new_password, auth, current_password=body.current_password
    )
    return ok(UserResponse.from_user(user))


@roles_router.get("", response_model=ApiResponse[List[RoleResponse]])
def list_roles(
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ok([RoleResponse.model_validate(r) for r in identity_service.list_roles(db)])


@roles_router.post("", response_model=ApiResponse[RoleResponse], status_code=201)
def create_role(
    body: RoleCreate,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    role = identity_service.create_role(db, body.name, auth, description=body.description)
    return ok(RoleResponse.model_validate(role))
