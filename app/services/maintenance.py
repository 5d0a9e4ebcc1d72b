"""Housekeeping: expired session rows and orphan blobs."""

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.services.auth import AuthService
from app.services.blob_store import BlobStore
from app.services.file_metadata import FileMetadataStore

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaintenanceReport:
    sessions_deleted: int
    orphan_blobs_deleted: int
    dangling_records: int


def sweep_orphan_blobs(
    blobs: BlobStore,
    metadata: FileMetadataStore,
    grace_seconds: float,
    now: float | None = None,
) -> tuple[int, int]:
    """
    Delete blobs that have no metadata row and are older than grace_seconds.

    The grace period keeps the sweep away from a store() that has written its
    blob but not yet inserted the row. Rows whose blob is missing are counted
    and logged but never deleted.

    Returns (orphan_blobs_deleted, dangling_records).
    """
    now = time.time() if now is None else now
    known = metadata.stored_names()

    deleted = 0
    on_disk: set[str] = set()
    for stored_name, mtime in blobs.iter_blobs():
        on_disk.add(stored_name)
        if stored_name in known or now - mtime < grace_seconds:
            continue
        if blobs.delete(stored_name, missing_ok=True):
            deleted += 1
            logger.info("Orphan blob removed", extra={"stored_name": stored_name})

    dangling = known - on_disk
    for stored_name in sorted(dangling):
        logger.error("Metadata row without blob", extra={"stored_name": stored_name})
    return deleted, len(dangling)


def run_maintenance(
    auth: AuthService,
    blobs: BlobStore,
    metadata: FileMetadataStore,
    settings: "Settings",
) -> MaintenanceReport:
    """Idempotent: safe to run repeatedly (cron)."""
    sessions_deleted = auth.cleanup_expired_sessions()
    orphans_deleted, dangling = sweep_orphan_blobs(
        blobs, metadata, grace_seconds=settings.ORPHAN_GRACE_MINUTES * 60
    )
    if sessions_deleted or orphans_deleted or dangling:
        logger.info(
            "Maintenance run",
            extra={
                "sessions_deleted": sessions_deleted,
                "orphan_blobs_deleted": orphans_deleted,
                "dangling_records": dangling,
            },
        )
    return MaintenanceReport(
        sessions_deleted=sessions_deleted,
        orphan_blobs_deleted=orphans_deleted,
        dangling_records=dangling,
    )
