"""Folder (file category) and ACL entry models.

Folders form a tree through ``parent_id``. The materialized ``path`` is
``/Parent/Child/`` — every ancestor name between slashes, with a leading and
trailing slash. Because a parent must exist before its child is created, the
tree cannot contain cycles.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, ForeignKey, Index
from sqlalchemy.orm import composite

from ..database import Base
from .audit_metadata import AuditMetadata, utcnow


class FileCategory(Base):
    """A folder. Soft-deleted through ``is_active``."""

    __tablename__ = "file_categories"
    __table_args__ = (
        Index("ix_file_categories_parent_id", "parent_id"),
        Index("ix_file_categories_path", "path"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    path = Column(String(1000), nullable=False)
    parent_id = Column(Integer, ForeignKey("file_categories.id"), nullable=True)
    description = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    inherit_parent_permissions = Column(Boolean, nullable=False, default=True)
    require_explicit_access = Column(Boolean, nullable=False, default=False)
    is_system = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_by = Column(String(36), nullable=True)
    modified_at = Column(DateTime(timezone=True), nullable=True)
    modified_by = Column(String(36), nullable=True)
    audit = composite(AuditMetadata, created_at, created_by, modified_at, modified_by)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class CategoryAccess(Base):
    """ACL entry granting a permission mask on a folder to a role or a user.

    Revocation deactivates the row and stamps who/when/why; rows are never
    deleted. An entry whose ``expiry_date`` has passed is treated as revoked
    regardless of ``is_active``.
    """

    __tablename__ = "category_access"
    __table_args__ = (
        Index("ix_category_access_category_role", "category_id", "role_id"),
        Index("ix_category_access_category_user", "category_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("file_categories.id"), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    permissions = Column(Integer, nullable=False, default=0)
    inherit_to_subfolders = Column(Boolean, nullable=False, default=True)
    inherit_to_files = Column(Boolean, nullable=False, default=True)

    granted_by = Column(String(36), nullable=True)
    granted_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expiry_date = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    revoked_by = Column(String(36), nullable=True)
    revoked_date = Column(DateTime(timezone=True), nullable=True)
    revoke_reason = Column(Text, nullable=True)
