"""Durable ownership and metadata records, one per blob."""

from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.file import StoredFile
from app.services.errors import PersistenceError


@dataclass(frozen=True)
class StorageStats:
    """Per-owner aggregate over metadata rows."""

    file_count: int
    total_size: int


class FileMetadataStore:
    """Narrow query interface over the files table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(self, record: StoredFile) -> StoredFile:
        try:
            self.db.add(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Database insert failed.", cause=e) from e
        return record

    def get(self, file_id: str) -> StoredFile | None:
        try:
            return self.db.query(StoredFile).filter(StoredFile.id == file_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to fetch file metadata.", cause=e) from e

    def delete(self, file_id: str) -> bool:
        """Delete the row. Returns False if no row matched."""
        try:
            deleted = (
                self.db.query(StoredFile)
                .filter(StoredFile.id == file_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Database delete failed.", cause=e) from e
        return deleted > 0

    def list_for_owner(self, owner_id: int) -> list[StoredFile]:
        """Newest first."""
        try:
            return (
                self.db.query(StoredFile)
                .filter(StoredFile.user_id == owner_id)
                .order_by(StoredFile.created_at.desc(), StoredFile.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to list files.", cause=e) from e

    def stats_for_owner(self, owner_id: int) -> StorageStats:
        try:
            file_count, total_size = (
                self.db.query(
                    func.count(StoredFile.id),
                    func.coalesce(func.sum(StoredFile.size), 0),
                )
                .filter(StoredFile.user_id == owner_id)
                .one()
            )
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to compute storage stats.", cause=e) from e
        return StorageStats(file_count=int(file_count or 0), total_size=int(total_size or 0))

    def stored_names(self) -> set[str]:
        """Every stored_name with a metadata row (maintenance sweep)."""
        try:
            return {name for (name,) in self.db.query(StoredFile.stored_name).all()}
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to list stored names.", cause=e) from e
