"""Wire services from a DB session and settings (used by routes, scripts and the maintenance job)."""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.core.security import get_password_hasher, get_token_authority
from app.services.auth import AuthService
from app.services.blob_store import BlobStore
from app.services.credentials import CredentialStore
from app.services.file_metadata import FileMetadataStore
from app.services.object_storage import TransactionalObjectService
from app.services.session_ledger import SessionLedger

if TYPE_CHECKING:
    from app.core.config import Settings


def build_auth_service(db: Session) -> AuthService:
    return AuthService(
        credentials=CredentialStore(db),
        sessions=SessionLedger(db),
        hasher=get_password_hasher(),
        tokens=get_token_authority(),
    )


def build_blob_store(settings: "Settings") -> BlobStore:
    return BlobStore(settings.STORAGE_PATH)


def build_object_service(db: Session, blobs: BlobStore) -> TransactionalObjectService:
    return TransactionalObjectService(blobs=blobs, metadata=FileMetadataStore(db))
