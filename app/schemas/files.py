"""Request/response schemas for file storage endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class FileResponse(BaseModel):
    """Metadata of one stored file."""

    model_config = {"from_attributes": True}

    id: str
    original_name: str
    stored_name: str
    size: int = Field(..., ge=0)
    mime_type: str | None = None
    created_at: datetime


class UploadResponse(BaseModel):
    """Response after a file and its metadata were persisted."""

    success: bool = True
    file: FileResponse


class DeleteResponse(BaseModel):
    success: bool = True
    message: str


class StorageStatsResponse(BaseModel):
    """Aggregate over the caller's files."""

    file_count: int = Field(..., ge=0)
    total_size: int = Field(..., ge=0, description="Total bytes across all files.")
