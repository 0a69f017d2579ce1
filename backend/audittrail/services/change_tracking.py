"""Explicit unit of work that audits every entity mutation it commits.

Services stage their inserts, updates and deletes on a ``UnitOfWork``
instead of touching the session directly::

    with UnitOfWork(db, ctx) as uow:
        uow.track(folder)          # snapshot before mutating
        folder.description = "..."
        uow.add(new_entry)
        uow.commit()

``commit()`` flushes, turns the staged entities into ``EntityChange``
records, writes one audit entry per change inside a savepoint, then commits
the whole transaction. Leaving the ``with`` block through an exception rolls
everything back.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from ..models.audit import AuditTrailEntry
from ..models.audit_metadata import stamp_modified, utcnow
from ..models.category import FileCategory
from ..models.file_record import FileRecord
from ..models.user import LoginAttempt, Role, User
from . import audit_service

logger = logging.getLogger(__name__)

ACTION_CREATED = "Created"
ACTION_MODIFIED = "Modified"
ACTION_DELETED = "Deleted"

# Insert-only logs of their own; never produce audit entries.
_UNAUDITED_TYPES = (AuditTrailEntry, LoginAttempt)

# Stamps maintained by the unit of work itself; a change to these alone is not a modification.
_METADATA_FIELDS = frozenset({"modified_at", "modified_by"})

_NAME_EXTRACTORS: Dict[type, Callable[[Any], Optional[str]]] = {}


def register_name_extractor(model: type, extractor: Callable[[Any], Optional[str]]) -> None:
    """Teach the audit trail how to label entities of *model*."""
    _NAME_EXTRACTORS[model] = extractor


register_name_extractor(FileCategory, lambda c: c.name)
register_name_extractor(FileRecord, lambda f: f.name)
register_name_extractor(User, lambda u: u.username)
register_name_extractor(Role, lambda r: r.name)


@dataclass
class EntityChange:
    entity_type: str
    action: str
    entity_id: str
    entity_name: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None

    @property
    def event_type(self) -> str:
        return f"{self.entity_type}{self.action}"


def is_audited(entity) -> bool:
    return not isinstance(entity, _UNAUDITED_TYPES)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def snapshot(entity) -> Dict[str, Any]:
    """Column values of *entity* keyed by attribute name, sensitive fields excluded."""
    mapper = inspect(entity).mapper
    return {
        attr.key: _jsonable(getattr(entity, attr.key))
        for attr in mapper.column_attrs
        if attr.key not in audit_service.SENSITIVE_FIELDS
    }


def entity_id_of(entity) -> str:
    """Primary key values joined by ``,``."""
    identity = inspect(entity).mapper.primary_key_from_instance(entity)
    return ",".join(str(part) for part in identity)


def entity_name_of(entity) -> Optional[str]:
    for model, extractor in _NAME_EXTRACTORS.items():
        if isinstance(entity, model):
            return extractor(entity)
    return None


def diff(old: Dict[str, Any], new: Dict[str, Any]):
    """Return (old, new) dicts restricted to keys whose values differ."""
    changed = [
        key for key in new
        if key not in _METADATA_FIELDS and old.get(key) != new[key]
    ]
    return {k: old.get(k) for k in changed}, {k: new[k] for k in changed}


class UnitOfWork:
    """Staged set of entity mutations committed together with their audit entries.

    Public methods:
        add             -- stage a new entity (created stamps applied)
        track           -- snapshot an existing entity before it is mutated
        delete          -- stage a hard delete
        collect_changes -- flush and describe what changed
        commit          -- audit, then commit the transaction
        rollback        -- discard everything staged
    """

    def __init__(self, db: Session, context):
        self.db = db
        self.context = context
        self._added: List[Any] = []
        self._tracked: Dict[int, tuple] = {}
        self._deleted: List[tuple] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback()
        return False

    def add(self, entity):
        if hasattr(entity, "created_at"):
            if entity.created_at is None:
                entity.created_at = utcnow()
            if entity.created_by is None:
                entity.created_by = self.context.user_id
        self.db.add(entity)
        self._added.append(entity)
        return entity

    def track(self, entity):
        key = id(entity)
        if key not in self._tracked and not any(e is entity for e in self._added):
            self._tracked[key] = (entity, snapshot(entity))
        return entity

    def delete(self, entity) -> None:
        self._deleted.append((entity, entity_id_of(entity), snapshot(entity)))
        self._tracked.pop(id(entity), None)
        self.db.delete(entity)

    def collect_changes(self) -> List[EntityChange]:
        """Flush staged work and describe it. Tracked entities that did not change yield nothing."""
        changes: List[EntityChange] = []

        modified = []
        for entity, before in self._tracked.values():
            old_values, new_values = diff(before, snapshot(entity))
            if new_values:
                if hasattr(entity, "modified_at"):
                    stamp_modified(entity, self.context.user_id)
                modified.append((entity, old_values, new_values))

        self.db.flush()

        for entity in self._added:
            if not is_audited(entity):
                continue
            changes.append(EntityChange(
                entity_type=type(entity).__name__,
                action=ACTION_CREATED,
                entity_id=entity_id_of(entity),
                entity_name=entity_name_of(entity),
                new_values=snapshot(entity),
            ))

        for entity, old_values, new_values in modified:
            if not is_audited(entity):
                continue
            changes.append(EntityChange(
                entity_type=type(entity).__name__,
                action=ACTION_MODIFIED,
                entity_id=entity_id_of(entity),
                entity_name=entity_name_of(entity),
                old_values=old_values,
                new_values=new_values,
            ))

        for entity, entity_id, before in self._deleted:
            if not is_audited(entity):
                continue
            changes.append(EntityChange(
                entity_type=type(entity).__name__,
                action=ACTION_DELETED,
                entity_id=entity_id,
                entity_name=entity_name_of(entity),
                old_values=before,
            ))

        return changes

    def commit(self) -> List[EntityChange]:
        """Write audit entries for the staged changes and commit.

        Raises ``AuditWriteError`` (after rolling back) when the audit write
        fails under the fail-closed policy.
        """
        try:
            changes = self.collect_changes()
            audit_service.record_changes(self.db, changes, self.context)
            self.db.commit()
        except Exception:
            self.rollback()
            raise
        logger.debug(
            "Committed %d change(s)", len(changes),
            extra={"event_types": [c.event_type for c in changes]},
        )
        self._clear()
        return changes

    def rollback(self) -> None:
        self.db.rollback()
        self._clear()

    def _clear(self) -> None:
        self._added.clear()
        self._tracked.clear()
        self._deleted.clear()
