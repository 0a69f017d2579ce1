"""Audit trail schemas. Read-only: there is no create or update schema."""

from datetime import datetime
from typing import List, Optional

from .common import CamelModel, PageInfo


class AuditEntryResponse(CamelModel):
    audit_id: str
    event_type: str
    event_category: str
    timestamp: datetime
    user_id: Optional[str] = None
    username: Optional[str] = None
    role_name: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    action: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    additional_data: Optional[str] = None
    result: str
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    server_name: Optional[str] = None
    application_version: Optional[str] = None


class AuditPageResponse(CamelModel):
    entries: List[AuditEntryResponse]
    page_info: PageInfo
