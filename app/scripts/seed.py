"""
Create the initial service account when none exists. Run after migrations:
  SEED_SERVICE_PASSWORD=... python -m app.scripts.seed
"""
import logging
import sys
from typing import TYPE_CHECKING

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.models.user import Role
from app.services.auth import AuthService
from app.services.errors import ServiceError
from app.services.factory import build_auth_service

if TYPE_CHECKING:
    from app.core.config import Settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def seed_service_account(auth: AuthService, settings: "Settings") -> bool:
    """
    Create SEED_SERVICE_EMAIL with the service role if no service account exists.

    Returns True if an account was created. Raises ValueError when one is needed
    but SEED_SERVICE_PASSWORD is not set.
    """
    existing = auth.credentials.count_by_role(Role.SERVICE)
    if existing:
        logger.info("Service account(s) already exist (count: %s)", existing)
        return False
    if settings.SEED_SERVICE_PASSWORD is None:
        raise ValueError("SEED_SERVICE_PASSWORD must be set to create the initial service account")
    user = auth.signup(
        settings.SEED_SERVICE_EMAIL,
        settings.SEED_SERVICE_PASSWORD.get_secret_value(),
        Role.SERVICE,
    )
    logger.info("Created service account %s (id=%s)", user.email, user.id)
    return True


def main() -> int:
    db = SessionLocal()
    try:
        seed_service_account(build_auth_service(db), get_settings())
        return 0
    except (ServiceError, ValueError) as e:
        logger.error("Seed failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
