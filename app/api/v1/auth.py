"""Signup, login and logout routes plus the auth dependencies (get_current_user, require_service)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.api.v1.errors import BEARER_CHALLENGE, to_http_exception
from app.core.database import get_db
from app.models.user import Role, User
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
from app.services.auth import AuthService
from app.services.errors import ServiceError
from app.services.factory import build_auth_service

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_auth_service(db: Annotated[Session, Depends(get_db)]) -> AuthService:
    """Dependency: AuthService bound to the request's DB session."""
    return build_auth_service(db)


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Dependency: the raw bearer token. Raises 401 if the header is missing."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers=BEARER_CHALLENGE,
        )
    return credentials.credentials


def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> CurrentUser:
    """Dependency: require a valid Bearer JWT whose role still matches the user. Raises 401 otherwise."""
    try:
        user = auth.validate(token)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return CurrentUser.model_validate(user)


def require_service(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'service'. Raises 403 otherwise."""
    if current_user.role != Role.SERVICE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Service role required",
        )
    return current_user


def _auth_response(token: str, user: User) -> AuthResponse:
    return AuthResponse(
        access_token=token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(
    body: SignupRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """
    Create a 'user' account and log it in.
    Include the returned token in the Authorization header as: Bearer <access_token>
    """
    try:
        user = auth.signup(body.email, body.password, Role.USER)
        return _auth_response(auth.start_session(user), user)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """Authenticate with email and password; returns a JWT access token."""
    try:
        token, user = auth.login(body.email, body.password)
        return _auth_response(token, user)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post("/logout", response_model=LogoutResponse)
def logout(
    token: Annotated[str, Depends(get_bearer_token)],
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> LogoutResponse:
    """
    Remove the session record for the presented token.

    The token itself remains cryptographically valid until it expires; there is
    no revocation list.
    """
    try:
        auth.logout(token)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return LogoutResponse()


@router.get("/me", response_model=MeResponse)
def me(
    token: Annotated[str, Depends(get_bearer_token)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> MeResponse:
    """Return the authenticated principal and when the presented token expires."""
    try:
        user, claims = auth.validate_with_claims(token)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return MeResponse(user=CurrentUser.model_validate(user), expires_at=claims.expires_at)


@router.post("/service", response_model=UserResponse, status_code=201)
def create_service_account(
    body: ServiceAccountRequest,
    _service: Annotated[CurrentUser, Depends(require_service)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    """Create a service account (service role only)."""
    try:
        user = auth.signup(body.email, body.password, Role.SERVICE)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return UserResponse.model_validate(user)


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _service: Annotated[CurrentUser, Depends(require_service)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> UsersListResponse:
    """List all users (service role only)."""
    try:
        users = auth.credentials.list_users()
    except ServiceError as e:
        raise to_http_exception(e) from e
    return UsersListResponse(users=[UserResponse.model_validate(u) for u in users])


@router.put("/users/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    body: RoleUpdateRequest,
    service: Annotated[CurrentUser, Depends(require_service)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    """
    Promote or demote a user (service role only).

    Tokens the user holds under the previous role stop validating immediately.
    """
    try:
        user = auth.change_role(user_id, body.role)
    except ServiceError as e:
        raise to_http_exception(e) from e
    logger.info(
        "Role updated by service account",
        extra={"actor_id": service.id, "user_id": user.id, "role": user.role},
    )
    return UserResponse.model_validate(user)
