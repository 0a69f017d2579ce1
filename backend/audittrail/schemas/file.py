"""File record schemas."""

from datetime import datetime
from typing import Optional

from .common import CamelModel


class FileResponse(CamelModel):
    id: str
    name: str
    extension: str
    content_type: str
    size: int
    checksum: str
    checksum_algorithm: str
    category_id: Optional[int] = None
    version: int
    is_current_version: bool
    parent_version_id: Optional[str] = None
    description: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_date: datetime
    is_deleted: bool
    deleted_date: Optional[datetime] = None
    delete_reason: Optional[str] = None


class FileMetadataUpdate(CamelModel):
    description: Optional[str] = None


class FileDeleteRequest(CamelModel):
    reason: Optional[str] = None


class DownloadUrlResponse(CamelModel):
    url: str
    expires_in_seconds: int
