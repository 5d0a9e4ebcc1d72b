"""Keep a filesystem blob and its metadata row consistent without a shared transaction.

The filesystem and the database cannot commit atomically together, so every
multi-step operation is ordered to make "orphan blob" (bytes on disk, no row)
the only possible residue of a partial failure:

  store:  write blob -> insert row; on insert failure delete the blob again.
  delete: delete row -> delete blob; a failed blob delete is logged, not raised.

A dangling row (row with no blob) would turn into silent data loss on read, so
no step order can produce one. Orphans left by a crash between the two steps
are reclaimed by the maintenance sweep (app.maintenance).
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from app.models.file import MIME_TYPE_MAX_LEN, ORIGINAL_NAME_MAX_LEN, StoredFile
from app.services.blob_store import BlobStore
from app.services.errors import (
    BlobMissingError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    StorageIOError,
)
from app.services.file_metadata import FileMetadataStore, StorageStats

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TransactionalObjectService:
    """Owns the pairing between blobs and their metadata rows."""

    def __init__(
        self,
        *,
        blobs: BlobStore,
        metadata: FileMetadataStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.blobs = blobs
        self.metadata = metadata
        self.clock = clock

    def store(
        self,
        data: bytes,
        original_name: str,
        owner_id: int,
        mime_type: str | None = None,
    ) -> StoredFile:
        """
        Persist bytes and their metadata; either both exist afterwards or neither does.

        Raises StorageIOError if the blob write fails (nothing is left behind) and
        PersistenceError if the metadata insert fails (the blob is removed again).
        InvalidInputError if the name or MIME type exceed the column limits.
        """
        if len(original_name) > ORIGINAL_NAME_MAX_LEN:
            raise InvalidInputError(
                f"File name must not exceed {ORIGINAL_NAME_MAX_LEN} characters."
            )
        if mime_type is not None and len(mime_type) > MIME_TYPE_MAX_LEN:
            raise InvalidInputError(
                f"Content type must not exceed {MIME_TYPE_MAX_LEN} characters."
            )
        blob = self.blobs.write(data, original_name)

        record = StoredFile(
            id=blob.id,
            user_id=owner_id,
            original_name=original_name,
            stored_name=blob.stored_name,
            size=blob.size,
            mime_type=mime_type,
            storage_path=str(self.blobs.base_path),
            created_at=self.clock(),
        )
        try:
            self.metadata.insert(record)
        except PersistenceError:
            self._compensate_store(blob.stored_name, owner_id)
            raise
        logger.info(
            "File stored",
            extra={"file_id": blob.id, "user_id": owner_id, "size": blob.size},
        )
        return record

    def _compensate_store(self, stored_name: str, owner_id: int) -> None:
        logger.warning(
            "Metadata insert failed; removing just-written blob",
            extra={"stored_name": stored_name, "user_id": owner_id},
        )
        try:
            self.blobs.delete(stored_name, missing_ok=True)
        except StorageIOError as e:
            # Orphan blob remains; the maintenance sweep reclaims it.
            logger.error(
                "Compensating blob delete failed",
                extra={"stored_name": stored_name, "reason": e.message},
            )

    def _get_owned(self, file_id: str, requester_id: int) -> StoredFile:
        record = self.metadata.get(file_id)
        if record is None:
            raise NotFoundError(f"File {file_id} not found.")
        if record.user_id != requester_id:
            raise ForbiddenError("Access denied: file belongs to another user.")
        return record

    def retrieve_with_metadata(self, file_id: str, requester_id: int) -> tuple[StoredFile, bytes]:
        """
        Return the metadata row and the bytes.

        Ownership is decided from metadata alone; a non-owner never reaches the
        filesystem.
        """
        record = self._get_owned(file_id, requester_id)
        try:
            data = self.blobs.read(record.stored_name)
        except BlobMissingError:
            logger.error(
                "Metadata row has no blob",
                extra={"file_id": file_id, "stored_name": record.stored_name},
            )
            raise
        return record, data

    def retrieve(self, file_id: str, requester_id: int) -> bytes:
        _, data = self.retrieve_with_metadata(file_id, requester_id)
        return data

    def delete(self, file_id: str, requester_id: int) -> None:
        """
        Delete metadata first, then the blob.

        Once the row is gone the blob is unreachable through the API, so a
        failed blob delete only leaves a reclaimable orphan and is not raised.
        """
        record = self._get_owned(file_id, requester_id)
        stored_name = record.stored_name
        if not self.metadata.delete(file_id):
            # Lost a race with a concurrent delete of the same file.
            raise NotFoundError(f"File {file_id} not found.")
        try:
            self.blobs.delete(stored_name, missing_ok=True)
        except StorageIOError as e:
            logger.warning(
                "Blob delete failed after metadata delete; orphan left for sweep",
                extra={"file_id": file_id, "stored_name": stored_name, "reason": e.message},
            )
        logger.info("File deleted", extra={"file_id": file_id, "user_id": requester_id})

    def list_files(self, owner_id: int) -> list[StoredFile]:
        """Owner's files, newest first. Metadata only."""
        return self.metadata.list_for_owner(owner_id)

    def stats(self, owner_id: int) -> StorageStats:
        """File count and total bytes for the owner. Metadata only."""
        return self.metadata.stats_for_owner(owner_id)
