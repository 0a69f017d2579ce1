"""Audit trail API (Administrator only). Read-only.

    GET /api/audit                      — search (startDate, endDate, userId, eventType,
                                          entityType, result, page, pageSize)
    GET /api/audit/event-types          — distinct event types, for filters
    GET /api/audit/entity-types         — distinct entity types, for filters
    GET /api/audit/users/{userId}       — a user's recent activity (days, default 30)
    GET /api/audit/entities/{entityId}  — history of one entity
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin
from ..database import get_db
from ..schemas import ApiResponse, AuditEntryResponse, AuditPageResponse, PageInfo, ok
from ..services import audit_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/audit", tags=["Audit"])


@router.get("", response_model=ApiResponse[AuditPageResponse])
def search_audit(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    user_id: Optional[str] = Query(None, alias="userId"),
    event_type: Optional[str] = Query(None, alias="eventType"),
    entity_type: Optional[str] = Query(None, alias="entityType"),
    result: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    found = audit_service.search(
        db,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
        event_type=event_type,
        entity_type=entity_type,
        result=result,
        page=page,
        page_size=page_size,
    )
    return ok(AuditPageResponse(
        entries=[AuditEntryResponse.model_validate(e) for e in found.entries],
        page_info=PageInfo(page=found.page, page_size=found.page_size, total=found.total),
    ))


@router.get("/users/{user_id}", response_model=ApiResponse[List[AuditEntryResponse]])
def audit_by_user(
    user_id: str,
    days: int = Query(30, ge=1),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    entries = audit_service.get_by_user(db, user_id, days=days, page=page, page_size=page_size)
    return ok([AuditEntryResponse.model_validate(e) for e in entries])


@router.get("/entities/{entity_id}", response_model=ApiResponse[List[AuditEntryResponse]])
def audit_by_entity(
    entity_id: str,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    entries = audit_service.get_by_entity(db, entity_id, page=page, page_size=page_size)
    return ok([AuditEntryResponse.model_validate(e) for e in entries])


@router.get("/event-types", response_model=ApiResponse[List[str]])
def audit_event_types(
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ok(audit_service.list_event_types(db))


@router.get("/entity-types", response_model=ApiResponse[List[str]])
def audit_entity_types(
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ok(audit_service.list_entity_types(db))
