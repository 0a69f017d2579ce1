"""Data access for the audit trail.

Exposes inserts and reads only. There is no update or delete method;
the model layer rejects both as well.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Query, Session

from ..models.audit import AuditTrailEntry


class AuditRepository:

    def __init__(self, db: Session):
        self.db = db

    def add(self, entry: AuditTrailEntry) -> AuditTrailEntry:
        self.db.add(entry)
        return entry

    def _newest_first(self, query: Query) -> Query:
        return query.order_by(AuditTrailEntry.timestamp.desc(), AuditTrailEntry.id.desc())

    def search(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        entity_type: Optional[str] = None,
        result: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[AuditTrailEntry], int]:
        """Filtered page of entries plus the total match count. Every filter is optional."""
        query = self.db.query(AuditTrailEntry)
        if start_date is not None:
            query = query.filter(AuditTrailEntry.timestamp >= start_date)
        if end_date is not None:
            query = query.filter(AuditTrailEntry.timestamp <= end_date)
        if user_id:
            query = query.filter(AuditTrailEntry.user_id == user_id)
        if event_type:
            query = query.filter(AuditTrailEntry.event_type == event_type)
        if entity_type:
            query = query.filter(AuditTrailEntry.entity_type == entity_type)
        if result:
            query = query.filter(AuditTrailEntry.result == result)

        total = query.count()
        entries = self._newest_first(query).offset(offset).limit(limit).all()
        return entries, total

    def _distinct(self, column) -> List[str]:
        """Sorted distinct non-null values of an audit column, for filter pickers."""
        rows = self.db.query(column).filter(column.isnot(None)).distinct().order_by(column).all()
        return [row[0] for row in rows]

    def event_types(self) -> List[str]:
        return self._distinct(AuditTrailEntry.event_type)

    def entity_types(self) -> List[str]:
        return self._distinct(AuditTrailEntry.entity_type)

    def for_user_since(self, user_id: str, since: datetime, offset: int, limit: int) -> List[AuditTrailEntry]:
        query = self.db.query(AuditTrailEntry).filter(
            AuditTrailEntry.user_id == user_id,
            AuditTrailEntry.timestamp >= since,
        )
        return self._newest_first(query).offset(offset).limit(limit).all()

    def for_entity(self, entity_id: str, offset: int, limit: int) -> List[AuditTrailEntry]:
        query = self.db.query(AuditTrailEntry).filter(AuditTrailEntry.entity_id == entity_id)
        return self._newest_first(query).offset(offset).limit(limit).all()

    def get_by_audit_id(self, audit_id: str) -> Optional[AuditTrailEntry]:
        return (
            self.db.query(AuditTrailEntry)
            .filter(AuditTrailEntry.audit_id == audit_id)
            .first()
        )
