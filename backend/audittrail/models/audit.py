"""Audit trail entry model.

Entries are insert-only. Three layers reject changes to a written entry:

- mapper events refuse to flush an UPDATE or DELETE of a loaded entry,
- a session hook refuses ORM bulk ``update()`` / ``delete()`` statements,
- database triggers refuse raw SQL updates and deletes.
"""

import uuid

from sqlalchemy import DDL, Column, String, DateTime, Integer, Text, Index, event
from sqlalchemy.orm import Session

from ..database import Base
from ..exceptions import ImmutableAuditError
from .audit_metadata import utcnow


def _new_uuid() -> str:
    return str(uuid.uuid4())


class AuditTrailEntry(Base):
    """Immutable record of one audited event.

    Fields:
        event_type     — e.g. UserLogin, UserLoginFailed, FileCategoryCreated
        event_category — User, Document, System or General (derived from event_type)
        action         — Login, Created, Modified, Deleted, Download, ...
        old_value / new_value — JSON snapshots, sensitive fields excluded
        result         — Success, Failed or Warning
    """

    __tablename__ = "audit_trail"
    __table_args__ = (
        Index("ix_audit_trail_timestamp", "timestamp"),
        Index("ix_audit_trail_user_id", "user_id"),
        Index("ix_audit_trail_entity_id", "entity_id"),
        Index("ix_audit_trail_event_type", "event_type"),
    )

    # Sequence gives a stable newest-first order for entries sharing a timestamp.
    id = Column(Integer, primary_key=True, autoincrement=True)
    audit_id = Column(String(36), unique=True, nullable=False, default=_new_uuid)

    event_type = Column(String(100), nullable=False)
    event_category = Column(String(50), nullable=False, default="General")
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user_id = Column(String(36), nullable=True)
    username = Column(String(100), nullable=True)
    role_name = Column(String(100), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    session_id = Column(String(64), nullable=True)

    entity_type = Column(String(100), nullable=True)
    entity_id = Column(String(255), nullable=True)
    entity_name = Column(String(500), nullable=True)

    action = Column(String(50), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    additional_data = Column(Text, nullable=True)

    result = Column(String(20), nullable=False, default="Success")
    error_message = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)

    server_name = Column(String(255), nullable=True)
    application_version = Column(String(50), nullable=True)


@event.listens_for(AuditTrailEntry, "before_update")
def _reject_update(mapper, connection, target):
    raise ImmutableAuditError("update")


@event.listens_for(AuditTrailEntry, "before_delete")
def _reject_delete(mapper, connection, target):
    raise ImmutableAuditError("delete")


@event.listens_for(Session, "do_orm_execute")
def _reject_bulk_changes(orm_execute_state):
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    table = getattr(orm_execute_state.statement, "table", None)
    if getattr(table, "name", None) == AuditTrailEntry.__tablename__:
        raise ImmutableAuditError("update" if orm_execute_state.is_update else "delete")


# Database-level guards for anything that bypasses the ORM.
event.listen(
    AuditTrailEntry.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER audit_trail_no_update BEFORE UPDATE ON audit_trail "
        "BEGIN SELECT RAISE(ABORT, 'audit trail is append-only'); END"
    ).execute_if(dialect="sqlite"),
)
event.listen(
    AuditTrailEntry.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER audit_trail_no_delete BEFORE DELETE ON audit_trail "
        "BEGIN SELECT RAISE(ABORT, 'audit trail is append-only'); END"
    ).execute_if(dialect="sqlite"),
)
event.listen(
    AuditTrailEntry.__table__,
    "after_create",
    DDL(
        "CREATE OR REPLACE FUNCTION audit_trail_append_only() RETURNS trigger AS $$ "
        "BEGIN RAISE EXCEPTION 'audit trail is append-only'; END; $$ LANGUAGE plpgsql; "
        "CREATE TRIGGER audit_trail_no_change BEFORE UPDATE OR DELETE ON audit_trail "
        "FOR EACH ROW EXECUTE FUNCTION audit_trail_append_only()"
    ).execute_if(dialect="postgresql"),
)
