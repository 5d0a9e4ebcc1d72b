"""Request/response schemas for auth endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.core.security import EMAIL_MAX_LEN, EMAIL_MIN_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.models.user import Role


def _validate_email(value: str) -> str:
    """Trim and require a single '@' with non-empty local and domain parts."""
    email = value.strip()
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain or "@" in domain:
        raise ValueError("email must look like local@domain")
    return email


class SignupRequest(BaseModel):
    """Credentials for a new account (role is always 'user')."""

    email: str = Field(..., min_length=EMAIL_MIN_LEN, max_length=EMAIL_MAX_LEN, description="Email")
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN, description="Password"
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _validate_email(v)


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., min_length=1, max_length=EMAIL_MAX_LEN, description="Email")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        """Same normalisation as signup, without rejecting malformed input."""
        return v.strip()


class ServiceAccountRequest(SignupRequest):
    """Credentials for a new service account (service role only)."""


class RoleUpdateRequest(BaseModel):
    """New role for an existing user."""

    role: Role


class UserResponse(BaseModel):
    """Public view of a user (no password hash)."""

    model_config = {"from_attributes": True}

    id: int
    email: str
    role: Role
    created_at: datetime | None = None


class AuthResponse(BaseModel):
    """JWT access token plus the authenticated user."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user: UserResponse


class CurrentUser(BaseModel):
    """Authenticated principal (id, email, role) for dependency injection."""

    model_config = {"from_attributes": True}

    id: int
    email: str
    role: Role


class MeResponse(BaseModel):
    """Current principal plus the expiry of the presented token."""

    user: CurrentUser
    expires_at: datetime


class UsersListResponse(BaseModel):
    """Response for GET /auth/users (service role only)."""

    users: list[UserResponse]


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out"
