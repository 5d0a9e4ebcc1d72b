"""Exceptions raised by the auth and object storage services.

Routes translate these into HTTP responses; services never answer a
user-triggered condition by crashing the process.
"""


class ServiceError(Exception):
    """Base class for every error the services raise on purpose."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


# --- Validation / authorization / lookup -------------------------------------


class InvalidInputError(ServiceError):
    """Malformed caller input. Never retried."""


class ForbiddenError(ServiceError):
    """Authenticated, but not the owner or not the required role."""


class NotFoundError(ServiceError):
    """Referenced entity does not exist."""


class ConflictError(ServiceError):
    """Uniqueness violation."""


class UserAlreadyExistsError(ConflictError):
    """Signup for an email that is already registered."""


class InvalidCredentialsError(ServiceError):
    """Unknown email or wrong password; the two are deliberately indistinguishable."""


# --- Transient ----------------------------------------------------------------


class PersistenceError(ServiceError):
    """Database unavailable or statement failed. Safe to retry the whole operation."""


class StorageIOError(ServiceError):
    """Filesystem read, write or delete failed."""


class BlobMissingError(StorageIOError):
    """A blob expected on disk is not there."""


# --- Cryptographic ----------------------------------------------------------


class PasswordHashingError(ServiceError):
    """The password hasher failed. Never retried."""


class TokenError(ServiceError):
    """Base for token failures. Callers must not reveal which subclass occurred."""


class MalformedTokenError(TokenError):
    """Not a decodable token, missing claims, or the subject no longer exists."""


class BadSignatureError(TokenError):
    """Signature does not verify against the current signing secret."""


class TokenExpiredError(TokenError):
    """Current time is past the token's exp claim."""


class RoleChangedError(TokenError):
    """The role embedded in the token differs from the user's live role."""
