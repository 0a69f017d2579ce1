"""Data access for folders (file categories) and their ACL entries."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_

from ..exceptions import FolderNotFoundError
from ..models.category import CategoryAccess, FileCategory
from .base import BaseRepository


class CategoryRepository(BaseRepository[FileCategory]):
    model_class = FileCategory
    not_found_error = FolderNotFoundError

    def get_active(self, category_id: int) -> FileCategory:
        """Get an active folder. Raises FolderNotFoundError for missing or soft-deleted ones."""
        folder = (
            self.db.query(FileCategory)
            .filter(FileCategory.id == category_id, FileCategory.is_active.is_(True))
            .first()
        )
        if folder is None:
            raise FolderNotFoundError(category_id)
        return folder

    def get_active_by_path(self, path: str) -> Optional[FileCategory]:
        """Active folder with *path*, compared case-insensitively."""
        return (
            self.db.query(FileCategory)
            .filter(
                func.lower(FileCategory.path) == path.lower(),
                FileCategory.is_active.is_(True),
            )
            .first()
        )

    def list_roots(self) -> List[FileCategory]:
        return (
            self.db.query(FileCategory)
            .filter(FileCategory.parent_id.is_(None), FileCategory.is_active.is_(True))
            .order_by(FileCategory.name)
            .all()
        )

    def list_children(self, parent_id: int) -> List[FileCategory]:
        return (
            self.db.query(FileCategory)
            .filter(FileCategory.parent_id == parent_id, FileCategory.is_active.is_(True))
            .order_by(FileCategory.name)
            .all()
        )


class CategoryAccessRepository:
    """ACL entries. Rows are deactivated, never deleted."""

    def __init__(self, db):
        self.db = db

    def get_active_for_role(self, category_id: int, role_id: int) -> Optional[CategoryAccess]:
        """The authoritative active entry for (folder, role), if any."""
        return (
            self.db.query(CategoryAccess)
            .filter(
                CategoryAccess.category_id == category_id,
                CategoryAccess.role_id == role_id,
                CategoryAccess.is_active.is_(True),
            )
            .order_by(CategoryAccess.id.desc())
            .first()
        )

    def is_expired(self, entry: CategoryAccess, now: datetime) -> bool:
        """Whether *entry* is past its ``expiry_date``, compared in SQL."""
        return (
            self.db.query(CategoryAccess.id)
            .filter(
                CategoryAccess.id == entry.id,
                CategoryAccess.expiry_date.isnot(None),
                CategoryAccess.expiry_date <= now,
            )
            .first()
            is not None
        )

    def effective_masks(
        self,
        category_id: int,
        role_id: int,
        user_id: str,
        now: datetime,
        inheritable_only: bool = False,
    ) -> List[int]:
        """Masks of live entries on a folder that apply to this role or user.

        Entries past their ``expiry_date`` are excluded even when still active.
        """
        query = self.db.query(CategoryAccess.permissions).filter(
            CategoryAccess.category_id == category_id,
            or_(CategoryAccess.role_id == role_id, CategoryAccess.user_id == user_id),
            CategoryAccess.is_active.is_(True),
            or_(CategoryAccess.expiry_date.is_(None), CategoryAccess.expiry_date > now),
        )
        if inheritable_only:
            query = query.filter(CategoryAccess.inherit_to_subfolders.is_(True))
        return [row[0] for row in query.all()]

    def list_active(self, category_id: int) -> List[CategoryAccess]:
        return (
            self.db.query(CategoryAccess)
            .filter(
                CategoryAccess.category_id == category_id,
                CategoryAccess.is_active.is_(True),
            )
            .order_by(CategoryAccess.role_id, CategoryAccess.id)
            .all()
        )

    def add(self, entry: CategoryAccess) -> CategoryAccess:
        self.db.add(entry)
        return entry
