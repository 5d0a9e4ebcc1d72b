"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AuthResponse,
    CurrentUser,
    LoginRequest,
    LogoutResponse,
    MeResponse,
    RoleUpdateRequest,
    ServiceAccountRequest,
    SignupRequest,
    UserResponse,
    UsersListResponse,
)
from app.schemas.files import DeleteResponse, FileResponse, StorageStatsResponse, UploadResponse
from app.schemas.health import HealthResponse

__all__ = [
    "AuthResponse",
    "CurrentUser",
    "DeleteResponse",
    "FileResponse",
    "HealthResponse",
    "LoginRequest",
    "LogoutResponse",
    "MeResponse",
    "RoleUpdateRequest",
    "ServiceAccountRequest",
    "SignupRequest",
    "StorageStatsResponse",
    "UploadResponse",
    "UserResponse",
    "UsersListResponse",
]
