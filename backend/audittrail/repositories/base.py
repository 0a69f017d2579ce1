"""Primary-key lookups shared by the entity repositories.

Repositories only read and stage. Nothing here commits: writes belong to the
caller's ``UnitOfWork``, which commits them alongside their audit entries.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import inspect
from sqlalchemy.orm import Query, Session

from ..database import Base
from ..exceptions import AuditTrailError

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Subclasses set ``model_class`` and the ``not_found_error`` raised by
    ``get_by_id``. Override ``_base_query`` to hide rows by default, as
    ``FileRepository`` does for soft-deleted versions.
    """

    model_class: Type[ModelT]
    not_found_error: Type[AuditTrailError]

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        return self.db.query(self.model_class)

    def _primary_key(self):
        return inspect(self.model_class).primary_key[0]

    def get_by_id_optional(self, entity_id: Any) -> Optional[ModelT]:
        if entity_id is None:
            return None
        return self._base_query().filter(self._primary_key() == entity_id).one_or_none()

    def get_by_id(self, entity_id: Any) -> ModelT:
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity
