"""File record model.

Every upload creates a new row. Rows sharing a folder and a name form one
logical file whose versions are chained through ``parent_version_id``; only
the newest live row carries ``is_current_version``.
"""

import uuid

from sqlalchemy import Column, String, DateTime, Boolean, Integer, BigInteger, Text, ForeignKey, Index
from sqlalchemy.orm import composite

from ..database import Base
from .audit_metadata import AuditMetadata, utcnow


def _new_uuid() -> str:
    return str(uuid.uuid4())


class FileRecord(Base):
    """One stored version of a file."""

    __tablename__ = "files"
    __table_args__ = (
        Index("ix_files_category_name", "category_id", "name"),
        Index("ix_files_uploaded_by", "uploaded_by"),
    )

    id = Column(String(36), primary_key=True, default=_new_uuid)
    name = Column(String(255), nullable=False)
    extension = Column(String(50), nullable=False, default="")
    content_type = Column(String(255), nullable=False, default="application/octet-stream")
    size = Column(BigInteger, nullable=False, default=0)
    checksum = Column(String(64), nullable=False)
    checksum_algorithm = Column(String(20), nullable=False, default="SHA256")
    storage_locator = Column(String(1000), nullable=False)
    description = Column(Text, nullable=True)

    # NULL = orphan; orphaned files resolve to no permissions at all.
    category_id = Column(Integer, ForeignKey("file_categories.id"), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    is_current_version = Column(Boolean, nullable=False, default=True)
    parent_version_id = Column(String(36), ForeignKey("files.id"), nullable=True)

    uploaded_by = Column(String(36), nullable=True)
    uploaded_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_date = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(String(36), nullable=True)
    delete_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_by = Column(String(36), nullable=True)
    modified_at = Column(DateTime(timezone=True), nullable=True)
    modified_by = Column(String(36), nullable=True)
    audit = composite(AuditMetadata, created_at, created_by, modified_at, modified_by)
