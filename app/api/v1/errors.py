"""Map service exceptions to HTTP responses at the route boundary."""

from fastapi import HTTPException, status

from app.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    RoleChangedError,
    ServiceError,
    TokenError,
)

BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def to_http_exception(exc: ServiceError) -> HTTPException:
    """
    Translate a service error into an HTTPException.

    Token failures other than a role change share one message so a client
    cannot tell an expired token from a tampered one.
    """
    if isinstance(exc, RoleChangedError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
            headers=BEARER_CHALLENGE,
        )
    if isinstance(exc, TokenError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers=BEARER_CHALLENGE,
        )
    if isinstance(exc, InvalidCredentialsError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )
    if isinstance(exc, InvalidInputError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message)
    if isinstance(exc, ForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    if isinstance(exc, PersistenceError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage backend unavailable, retry the request.",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)
