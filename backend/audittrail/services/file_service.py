"""File operations: upload with version chain, download, soft delete, history.

A file's permissions are those of its folder. Blobs go to the configured
``FileStorage`` before the record is written; if the record cannot be
committed the blob is removed again.

Known gap: two concurrent uploads of the same name into the same folder can
both read the same previous version and both end up current.
"""

import hashlib
import logging
import tempfile
from pathlib import PurePosixPath
from typing import BinaryIO, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.config import settings
from ..core.permissions import FilePermissions
from ..exceptions import FileRecordNotFoundError, ForbiddenError, StorageError, ValidationError
from ..models.audit_metadata import utcnow
from ..models.file_record import FileRecord
from ..repositories.category_repository import CategoryRepository
from ..repositories.file_repository import FileRepository
from ..storage.base import FileStorage
from . import audit_service
from .change_tracking import UnitOfWork
from .permission_service import PermissionService

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
# Uploads larger than this spill from memory to a temporary file while hashing.
_SPOOL_MAX_BYTES = 8 * 1024 * 1024

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def clean_filename(filename: Optional[str]) -> str:
    """Last path component of *filename*, stripped. Raises ValidationError if empty."""
    name = PurePosixPath((filename or "").replace("\\", "/")).name.strip()
    if not name or name in (".", ".."):
        raise ValidationError("File name required", field="filename")
    if len(name) > 255:
        raise ValidationError("File name cannot exceed 255 characters", field="filename")
    return name


class FileService:
    """Versioned file store on top of the folder permission model.

    Public methods:
        upload_file      -- new version; previous current version demoted (Upload)
        get_file         -- record lookup (View)
        download_file    -- record plus open blob, audited (Download)
        get_download_url -- signed, time-limited URL, audited (Download)
        open_signed      -- resolve a signed URL back to its blob
        delete_file      -- soft delete with reason (Delete)
        get_versions     -- every version of the logical file (View)
        update_metadata  -- description (ModifyMetadata)
    """

    def __init__(self, db: Session, storage: FileStorage):
        self.db = db
        self.storage = storage
        self.files = FileRepository(db)
        self.folders = CategoryRepository(db)
        self.permissions = PermissionService(db)

    def _require(self, record: FileRecord, context: AuthContext, permission: FilePermissions, action: str) -> None:
        if not self.permissions.has_file_permission(record.id, context.user_id, permission):
            audit_service.log_denied(self.db, context, action, "FileRecord", record.id, record.name)
            raise ForbiddenError(f"{permission.name.title().replace('_', ' ')} permission required on this file")

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload_file(
        self,
        folder_id: int,
        stream: BinaryIO,
        filename: str,
        content_type: Optional[str],
        context: AuthContext,
        description: Optional[str] = None,
    ) -> FileRecord:
        """Store a new version of *filename* in the folder and make it current."""
        folder = self.folders.get_active(folder_id)
        if not self.permissions.has_folder_permission(folder.id, context.user_id, FilePermissions.UPLOAD):
            audit_service.log_denied(self.db, context, "Upload", "FileCategory", str(folder.id), folder.name)
            raise ForbiddenError("Upload permission required on this folder")

        name = clean_filename(filename)
        content_type = content_type or DEFAULT_CONTENT_TYPE

        with tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES) as buffer:
            digest = hashlib.sha256()
            size = 0
            for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
                size += len(chunk)
                buffer.write(chunk)
            buffer.seek(0)
            locator = self.storage.upload(buffer, name, content_type)

        try:
            with UnitOfWork(self.db, context) as uow:
                previous = self.files.get_current_version(folder.id, name)
                version = self.files.get_next_version_number(folder.id, name)
                if previous is not None:
                    uow.track(previous)
                    previous.is_current_version = False

                record = uow.add(FileRecord(
                    name=name,
                    extension=PurePosixPath(name).suffix.lower(),
                    content_type=content_type,
                    size=size,
                    checksum=digest.hexdigest(),
                    checksum_algorithm="SHA256",
                    storage_locator=locator,
                    description=description,
                    category_id=folder.id,
                    version=version,
                    is_current_version=True,
                    parent_version_id=previous.id if previous is not None else None,
                    uploaded_by=context.user_id,
                    uploaded_date=utcnow(),
                ))
                uow.commit()
        except Exception:
            self._discard_blob(locator)
            raise

        logger.info(
            "File uploaded",
            extra={"file_id": record.id, "folder_id": folder.id, "version": version, "by": context.user_id},
        )
        return record

    def _discard_blob(self, locator: str) -> None:
        try:
            self.storage.delete(locator)
        except StorageError as e:
            logger.warning("Could not remove orphaned blob: %s", e.original_error, extra={"locator": locator})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_file(self, file_id: str, context: AuthContext) -> FileRecord:
        record = self.files.get_by_id(file_id)
        self._require(record, context, FilePermissions.VIEW, "ViewFile")
        return record

    def _open_audited(self, record: FileRecord, context: AuthContext, details: dict) -> BinaryIO:
        """Open the blob and record the download. The stream is closed if the audit write fails."""
        stream = self.storage.download(record.storage_locator)
        try:
            audit_service.log_for(
                self.db,
                context,
                "FileDownloaded",
                "Download",
                entity_type="FileRecord",
                entity_id=record.id,
                entity_name=record.name,
                additional_data=details,
            )
        except Exception:
            stream.close()
            raise
        return stream

    def download_file(self, file_id: str, context: AuthContext) -> Tuple[FileRecord, BinaryIO]:
        record = self.files.get_by_id(file_id)
        self._require(record, context, FilePermissions.DOWNLOAD, "Download")
        return record, self._open_audited(record, context, {"version": record.version, "size": record.size})

    def get_download_url(self, file_id: str, context: AuthContext, ttl: Optional[int] = None) -> str:
        record = self.files.get_by_id(file_id)
        self._require(record, context, FilePermissions.DOWNLOAD, "Download")
        ttl = ttl or settings.signed_url_ttl_seconds
        url = self.storage.signed_url(record.storage_locator, ttl)
        audit_service.log_for(
            self.db,
            context,
            "FileDownloadUrlIssued",
            "Download",
            entity_type="FileRecord",
            entity_id=record.id,
            entity_name=record.name,
            additional_data={"ttl_seconds": ttl},
        )
        return url

    def open_signed(self, locator: str, expires: int, signature: str, context: AuthContext) -> Tuple[FileRecord, BinaryIO]:
        """Blob behind a URL from ``get_download_url``. Raises ForbiddenError if the signature is bad or expired."""
        if not self.storage.verify_signature(locator, expires, signature):
            raise ForbiddenError("Download link is invalid or has expired")
        record = self.files.get_by_locator(locator)
        if record is None:
            raise FileRecordNotFoundError(locator)
        return record, self._open_audited(record, context, {"version": record.version, "via": "signed_url"})

    def get_versions(self, file_id: str, context: AuthContext) -> List[FileRecord]:
        """Every version of the logical file, newest first, deleted ones included."""
        record = self.files.get_any(file_id)
        if record is None:
            raise FileRecordNotFoundError(file_id)
        self._require(record, context, FilePermissions.VIEW, "ViewFile")
        return self.files.list_versions(record.category_id, record.name)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def delete_file(self, file_id: str, context: AuthContext, reason: Optional[str] = None) -> None:
        """Soft delete. The blob is kept and no older version is promoted."""
        record = self.files.get_by_id(file_id)
        self._require(record, context, FilePermissions.DELETE, "DeleteFile")

        with UnitOfWork(self.db, context) as uow:
            uow.track(record)
            record.is_deleted = True
            record.is_current_version = False
            record.deleted_date = utcnow()
            record.deleted_by = context.user_id
            record.delete_reason = reason
            uow.commit()
        logger.info("File deleted", extra={"file_id": file_id, "by": context.user_id})

    def update_metadata(self, file_id: str, context: AuthContext, description: Optional[str] = None) -> FileRecord:
        record = self.files.get_by_id(file_id)
        self._require(record, context, FilePermissions.MODIFY_METADATA, "UpdateFile")

        with UnitOfWork(self.db, context) as uow:
            uow.track(record)
            record.description = description
            uow.commit()
        return record
