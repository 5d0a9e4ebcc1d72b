"""Health check endpoint with database and storage checks."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.files import get_blob_store
from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.blob_store import BlobStore

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    blobs: Annotated[BlobStore, Depends(get_blob_store)],
) -> HealthResponse:
    """
    Return service health status, database connectivity and storage writability.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    storage_status = "writable" if blobs.is_writable() else "unavailable"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        storage=storage_status,
    )
