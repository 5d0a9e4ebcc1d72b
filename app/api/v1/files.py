"""File storage routes: upload, download, delete, list and stats for the authenticated user."""

from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.api.v1.errors import to_http_exception
from app.core.config import get_settings
from app.core.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.files import DeleteResponse, FileResponse, StorageStatsResponse, UploadResponse
from app.services.blob_store import BlobStore
from app.services.errors import ServiceError
from app.services.factory import build_blob_store, build_object_service
from app.services.object_storage import TransactionalObjectService

router = APIRouter()

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_blob_store() -> BlobStore:
    """Dependency: blob store rooted at STORAGE_PATH."""
    return build_blob_store(get_settings())


def get_object_service(
    db: Annotated[Session, Depends(get_db)],
    blobs: Annotated[BlobStore, Depends(get_blob_store)],
) -> TransactionalObjectService:
    """Dependency: object service bound to the request's DB session."""
    return build_object_service(db, blobs)


def _content_disposition(filename: str) -> str:
    """attachment header with an ASCII fallback and the RFC 5987 UTF-8 form."""
    fallback = "".join(
        c if 32 <= ord(c) < 127 and c not in '"\\' else "_" for c in filename
    ) or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("", response_model=list[FileResponse])
def list_files(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    objects: Annotated[TransactionalObjectService, Depends(get_object_service)],
) -> list[FileResponse]:
    """List the caller's files, newest first."""
    try:
        files = objects.list_files(user.id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return [FileResponse.model_validate(f) for f in files]


@router.post("/upload", response_model=UploadResponse, status_code=201)
def upload_file(
    file: UploadFile,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    objects: Annotated[TransactionalObjectService, Depends(get_object_service)],
) -> UploadResponse:
    """
    Store an uploaded file for the caller.

    Send `multipart/form-data` with a field named `file`. Empty files are
    accepted. The file's declared content type is recorded and returned on
    download.
    """
    max_bytes = get_settings().MAX_UPLOAD_BYTES
    data = file.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size must not exceed {max_bytes} bytes.",
        )
    original_name = file.filename or "unnamed"
    try:
        record = objects.store(data, original_name, user.id, file.content_type or None)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return UploadResponse(success=True, file=FileResponse.model_validate(record))


@router.get("/stats", response_model=StorageStatsResponse)
def get_storage_stats(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    objects: Annotated[TransactionalObjectService, Depends(get_object_service)],
) -> StorageStatsResponse:
    """File count and total size of the caller's files."""
    try:
        stats = objects.stats(user.id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return StorageStatsResponse(file_count=stats.file_count, total_size=stats.total_size)


@router.get("/{file_id}")
def download_file(
    file_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    objects: Annotated[TransactionalObjectService, Depends(get_object_service)],
) -> Response:
    """Return the raw bytes with the recorded content type and original filename."""
    try:
        record, data = objects.retrieve_with_metadata(file_id, user.id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return Response(
        content=data,
        media_type=record.mime_type or DEFAULT_MIME_TYPE,
        headers={"Content-Disposition": _content_disposition(record.original_name)},
    )


@router.delete("/{file_id}", response_model=DeleteResponse)
def delete_file(
    file_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    objects: Annotated[TransactionalObjectService, Depends(get_object_service)],
) -> DeleteResponse:
    """Delete a file owned by the caller."""
    try:
        objects.delete(file_id, user.id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return DeleteResponse(success=True, message=f"File {file_id} deleted successfully")
