"""
CLI entrypoint for the maintenance job. Run from cron, e.g.:

  python -m app.maintenance

Or hourly: 0 * * * * cd /path/to/projectkit && .venv/bin/python -m app.maintenance
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.factory import build_auth_service, build_blob_store
from app.services.file_metadata import FileMetadataStore
from app.services.maintenance import run_maintenance

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete expired sessions and reclaim orphan blobs."""
    settings = get_settings()
    db = SessionLocal()
    try:
        report = run_maintenance(
            build_auth_service(db),
            build_blob_store(settings),
            FileMetadataStore(db),
            settings,
        )
        logger.info(
            "Maintenance completed: sessions_deleted=%s orphan_blobs_deleted=%s dangling_records=%s",
            report.sessions_deleted,
            report.orphan_blobs_deleted,
            report.dangling_records,
        )
        return 0
    except Exception as e:
        logger.exception("Maintenance job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
