"""Creation/modification stamps shared by every mutable entity.

Each model maps its own four columns and exposes them through a composite
``audit`` attribute holding an ``AuditMetadata`` value, so entities compose
the stamps instead of inheriting them from a base entity class.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AuditMetadata:
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    modified_at: Optional[datetime] = None
    modified_by: Optional[str] = None


def stamp_modified(entity, actor_id: Optional[str]) -> None:
    """Record who touched *entity* and when."""
    entity.modified_at = utcnow()
    entity.modified_by = actor_id
