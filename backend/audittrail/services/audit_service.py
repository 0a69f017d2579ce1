"""Audit recorder — writes and reads the immutable audit trail.

Entries are insert-only. The service provides a write interface for the
application and a paginated read interface for admins; there is no update or
delete function, and the model layer rejects both.

Every write happens inside a SAVEPOINT on the caller's session so a failed
audit insert never poisons the surrounding transaction. What happens next is
governed by ``settings.audit_failure_policy``:

    fail_open   — the failure is logged and the business operation proceeds.
    fail_closed — ``AuditWriteError`` is raised and the caller rolls back.

Usage in service layer:
    audit_service.log(db, "FileDownloaded", "Download", user_id=ctx.user_id,
                      username=ctx.username, entity_type="FileRecord",
                      entity_id=file.id, ip_address=ctx.ip_address)
"""

import json
import logging
import socket
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..core.config import AuditFailurePolicy, settings
from ..exceptions import AuditWriteError, ValidationError
from ..models.audit import AuditTrailEntry
from ..models.audit_metadata import utcnow
from ..repositories.audit_repository import AuditRepository

logger = logging.getLogger(__name__)

# Never copied into old_value / new_value snapshots.
SENSITIVE_FIELDS = frozenset({"password_hash", "password_salt", "session_token", "refresh_token"})

CATEGORY_USER = "User"
CATEGORY_DOCUMENT = "Document"
CATEGORY_SYSTEM = "System"
CATEGORY_GENERAL = "General"

_SERVER_NAME = socket.gethostname()


@dataclass
class AuditPage:
    entries: List[AuditTrailEntry]
    total: int
    page: int
    page_size: int


def determine_category(event_type: Optional[str]) -> str:
    """Map an event type onto its reporting category by prefix."""
    event_type = event_type or ""
    if event_type.startswith(("User", "Login")):
        return CATEGORY_USER
    if event_type.startswith(("File", "Document")):
        return CATEGORY_DOCUMENT
    if event_type.startswith("System"):
        return CATEGORY_SYSTEM
    return CATEGORY_GENERAL


def strip_sensitive(values: Optional[dict]) -> Optional[dict]:
    if values is None:
        return None
    return {k: v for k, v in values.items() if k not in SENSITIVE_FIELDS}


def _serialize(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict):
        value = strip_sensitive(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str, sort_keys=True)
    return str(value)


def _build_entry(
    event_type: str,
    action: str,
    user_id: Optional[str] = None,
    username: Optional[str] = None,
    role_name: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_name: Optional[str] = None,
    old_value: Any = None,
    new_value: Any = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    session_id: Optional[str] = None,
    result: str = "Success",
    error_message: Optional[str] = None,
    additional_data: Any = None,
    duration_ms: Optional[int] = None,
) -> AuditTrailEntry:
    return AuditTrailEntry(
        audit_id=str(uuid.uuid4()),
        event_type=event_type,
        event_category=determine_category(event_type),
        timestamp=utcnow(),
        user_id=user_id,
        username=username,
        role_name=role_name,
        ip_address=ip_address,
        user_agent=user_agent,
        session_id=session_id,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        entity_name=entity_name,
        action=action,
        old_value=_serialize(old_value),
        new_value=_serialize(new_value),
        additional_data=_serialize(additional_data),
        result=result,
        error_message=error_message,
        duration_ms=duration_ms,
        server_name=_SERVER_NAME,
        application_version=settings.application_version,
    )


def _write(db: Session, entries: List[AuditTrailEntry]) -> bool:
    """Insert *entries* inside a savepoint. Applies the failure policy.

    Returns True when the entries were flushed. Under fail_closed a failure
    raises ``AuditWriteError``; under fail_open it is logged and False returned.
    """
    if not entries:
        return True
    repo = AuditRepository(db)
    try:
        with db.begin_nested():
            for entry in entries:
                repo.add(entry)
        return True
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.error(
            "Failed to write %d audit entr%s: %s",
            len(entries), "y" if len(entries) == 1 else "ies", e,
            extra={"event_types": [entry.event_type for entry in entries]},
        )
        if settings.audit_failure_policy == AuditFailurePolicy.FAIL_CLOSED:
            raise AuditWriteError(e) from e
        return False


def log(
    db: Session,
    event_type: str,
    action: str,
    user_id: Optional[str] = None,
    username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    old_value: Any = None,
    new_value: Any = None,
    ip_address: Optional[str] = None,
    result: str = "Success",
    error_message: Optional[str] = None,
    entity_name: Optional[str] = None,
    role_name: Optional[str] = None,
    user_agent: Optional[str] = None,
    session_id: Optional[str] = None,
    additional_data: Any = None,
    duration_ms: Optional[int] = None,
    commit: bool = True,
) -> Optional[str]:
    """Write one audit entry and return its ``audit_id``.

    Dict and list values are serialized to JSON with sensitive keys removed.
    With ``commit=True`` (the default) the session is committed afterwards;
    pass False when the entry must share a larger transaction.

    Returns None when the write failed under the fail-open policy.
    """
    entry = _build_entry(
        event_type,
        action,
        user_id=user_id,
        username=username,
        role_name=role_name,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        old_value=old_value,
        new_value=new_value,
        ip_address=ip_address,
        user_agent=user_agent,
        session_id=session_id,
        result=result,
        error_message=error_message,
        additional_data=additional_data,
        duration_ms=duration_ms,
    )
    written = _write(db, [entry])
    if commit:
        db.commit()
    return entry.audit_id if written else None


def log_for(db: Session, context, event_type: str, action: str, **fields) -> Optional[str]:
    """``log`` with caller identity and network details taken from an AuthContext."""
    return log(
        db,
        event_type,
        action,
        user_id=context.user_id,
        username=context.username,
        role_name=context.role_name,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        session_id=context.session_id,
        **fields,
    )


def record_changes(db: Session, changes: Iterable, context) -> List[str]:
    """Write one entry per entity change. Does not commit.

    Returns the audit ids written (empty under fail-open when the write failed).
    """
    entries = [
        _build_entry(
            change.event_type,
            change.action,
            user_id=context.user_id,
            username=context.username,
            role_name=context.role_name,
            entity_type=change.entity_type,
            entity_id=change.entity_id,
            entity_name=change.entity_name,
            old_value=change.old_values,
            new_value=change.new_values,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            session_id=context.session_id,
        )
        for change in changes
    ]
    if not _write(db, entries):
        return []
    return [entry.audit_id for entry in entries]


def log_denied(
    db: Session,
    context,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    entity_name: Optional[str] = None,
) -> Optional[str]:
    """Record a refused operation before the caller raises ForbiddenError."""
    return log_for(
        db,
        context,
        "AccessDenied",
        action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        result="Failed",
        error_message="Insufficient permissions",
    )


# ------------------------------------------------------------------
# Reads
# ------------------------------------------------------------------

AUDIT_RESULTS = ("Success", "Failed", "Warning")


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _page_bounds(page: int, page_size: Optional[int]) -> tuple:
    page = max(page or 1, 1)
    size = page_size or settings.audit_default_page_size
    size = min(max(size, 1), settings.audit_max_page_size)
    return page, size


def search(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    user_id: Optional[str] = None,
    event_type: Optional[str] = None,
    entity_type: Optional[str] = None,
    result: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> AuditPage:
    """Newest-first page of entries matching every supplied filter.

    Raises ValidationError when the range is inverted or *result* is not one
    of Success, Failed or Warning.
    """
    if start_date is not None and end_date is not None and _as_utc(start_date) > _as_utc(end_date):
        raise ValidationError("startDate must not be after endDate", field="startDate")
    if result and result not in AUDIT_RESULTS:
        raise ValidationError(
            f"result must be one of: {', '.join(AUDIT_RESULTS)}", field="result"
        )
    page, size = _page_bounds(page, page_size)
    entries, total = AuditRepository(db).search(
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
        event_type=event_type,
        entity_type=entity_type,
        result=result or None,
        offset=(page - 1) * size,
        limit=size,
    )
    return AuditPage(entries=entries, total=total, page=page, page_size=size)


def get_by_user(
    db: Session, user_id: str, days: int = 30, page: int = 1, page_size: Optional[int] = None
) -> List[AuditTrailEntry]:
    """Entries performed by *user_id* within the last *days* days."""
    page, size = _page_bounds(page, page_size)
    since = utcnow() - timedelta(days=days)
    return AuditRepository(db).for_user_since(user_id, since, (page - 1) * size, size)


def get_by_entity(
    db: Session, entity_id: str, page: int = 1, page_size: Optional[int] = None
) -> List[AuditTrailEntry]:
    """Entries that touched *entity_id*."""
    page, size = _page_bounds(page, page_size)
    return AuditRepository(db).for_entity(str(entity_id), (page - 1) * size, size)


def get_entry(db: Session, audit_id: str) -> Optional[AuditTrailEntry]:
    return AuditRepository(db).get_by_audit_id(audit_id)


def list_event_types(db: Session) -> List[str]:
    """Distinct event types present in the trail, for search filters."""
    return AuditRepository(db).event_types()


def list_entity_types(db: Session) -> List[str]:
    return AuditRepository(db).entity_types()
