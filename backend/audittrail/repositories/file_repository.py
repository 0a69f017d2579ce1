"""Data access for file records and their version chains."""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query

from ..exceptions import FileRecordNotFoundError
from ..models.file_record import FileRecord
from .base import BaseRepository


class FileRepository(BaseRepository[FileRecord]):
    """File records. ``get_by_id`` hides soft-deleted rows."""

    model_class = FileRecord
    not_found_error = FileRecordNotFoundError

    def _base_query(self) -> Query:
        return self.db.query(FileRecord).filter(FileRecord.is_deleted.is_(False))

    def get_any(self, file_id: str) -> Optional[FileRecord]:
        """Lookup including soft-deleted rows (used by permission checks and history)."""
        return self.db.query(FileRecord).filter(FileRecord.id == file_id).first()

    def get_current_version(self, category_id: Optional[int], name: str) -> Optional[FileRecord]:
        return (
            self._base_query()
            .filter(
                FileRecord.category_id == category_id,
                FileRecord.name == name,
                FileRecord.is_current_version.is_(True),
            )
            .order_by(FileRecord.version.desc())
            .first()
        )

    def get_next_version_number(self, category_id: Optional[int], name: str) -> int:
        """One past the highest version ever stored for (folder, name), deleted rows included."""
        highest = (
            self.db.query(func.max(FileRecord.version))
            .filter(FileRecord.category_id == category_id, FileRecord.name == name)
            .scalar()
        )
        return (highest or 0) + 1

    def list_current_in_folder(self, category_id: int) -> List[FileRecord]:
        return (
            self._base_query()
            .filter(
                FileRecord.category_id == category_id,
                FileRecord.is_current_version.is_(True),
            )
            .order_by(FileRecord.name)
            .all()
        )

    def count_current_in_folder(self, category_id: int) -> int:
        return (
            self._base_query()
            .filter(
                FileRecord.category_id == category_id,
                FileRecord.is_current_version.is_(True),
            )
            .count()
        )

    def list_versions(self, category_id: Optional[int], name: str) -> List[FileRecord]:
        """All versions of a logical file, newest first, deleted ones included."""
        return (
            self.db.query(FileRecord)
            .filter(FileRecord.category_id == category_id, FileRecord.name == name)
            .order_by(FileRecord.version.desc())
            .all()
        )

    def get_by_locator(self, storage_locator: str) -> Optional[FileRecord]:
        return self._base_query().filter(FileRecord.storage_locator == storage_locator).first()
