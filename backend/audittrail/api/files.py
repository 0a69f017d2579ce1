"""File API. Delegates to FileService; every check happens there.

    POST   /api/files                     — upload (multipart: folderId, file, description)
    GET    /api/files/blob                — serve a signed download URL
    GET    /api/files/{id}                — file record
    GET    /api/files/{id}/download       — file contents
    GET    /api/files/{id}/download-url   — signed, time-limited URL
    GET    /api/files/{id}/versions       — version history
    PUT    /api/files/{id}                — update description
    DELETE /api/files/{id}?reason=...     — soft delete
"""

import logging
from typing import BinaryIO, Iterator, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, client_context, require_auth
from ..core.config import settings
from ..database import get_db
from ..schemas import (
    ApiResponse,
    DownloadUrlResponse,
    FileMetadataUpdate,
    FileResponse,
    ok,
)
from ..services.file_service import FileService
from ..storage import FileStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])

_STREAM_CHUNK = 64 * 1024


def _iter_stream(stream: BinaryIO) -> Iterator[bytes]:
    try:
        for chunk in iter(lambda: stream.read(_STREAM_CHUNK), b""):
            yield chunk
    finally:
        stream.close()


def _attachment(record, stream: BinaryIO) -> StreamingResponse:
    return StreamingResponse(
        _iter_stream(stream),
        media_type=record.content_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.name)}"},
    )


@router.post("", response_model=ApiResponse[FileResponse], status_code=201)
def upload_file(
    folder_id: int = Form(..., alias="folderId"),
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    record = FileService(db, storage).upload_file(
        folder_id, file.file, file.filename, file.content_type, auth, description=description
    )
    return ok(FileResponse.model_validate(record))


@router.get("/blob", summary="Serve a signed download URL")
def download_signed(
    locator: str = Query(...),
    expires: int = Query(...),
    signature: str = Query(...),
    context: AuthContext = Depends(client_context),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    record, stream = FileService(db, storage).open_signed(locator, expires, signature, context)
    return _attachment(record, stream)


@router.get("/{file_id}", response_model=ApiResponse[FileResponse])
def get_file(
    file_id: str,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    return ok(FileResponse.model_validate(FileService(db, storage).get_file(file_id, auth)))


@router.get("/{file_id}/download", summary="Download file contents")
def download_file(
    file_id: str,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    record, stream = FileService(db, storage).download_file(file_id, auth)
    return _attachment(record, stream)


@router.get("/{file_id}/download-url", response_model=ApiResponse[DownloadUrlResponse])
def get_download_url(
    file_id: str,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    ttl = settings.signed_url_ttl_seconds
    url = FileService(db, storage).get_download_url(file_id, auth, ttl=ttl)
    return ok(DownloadUrlResponse(url=url, expires_in_seconds=ttl))


@router.get("/{file_id}/versions", response_model=ApiResponse[List[FileResponse]])
def get_versions(
    file_id: str,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    versions = FileService(db, storage).get_versions(file_id, auth)
    return ok([FileResponse.model_validate(v) for v in versions])


@router.put("/{file_id}", response_model=ApiResponse[FileResponse])
def update_file(
    file_id: str,
    body: FileMetadataUpdate,
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    record = FileService(db, storage).update_metadata(file_id, auth, description=body.description)
    return ok(FileResponse.model_validate(record))


@router.delete("/{file_id}", response_model=ApiResponse[None])
def delete_file(
    file_id: str,
    reason: Optional[str] = Query(None),
    auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    FileService(db, storage).delete_file(file_id, auth, reason=reason)
    return ok()
