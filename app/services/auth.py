"""Signup, login, token validation and logout on top of the credential and session stores."""

import logging

from app.core.security import Claims, PasswordHasher, TokenAuthority
from app.models.user import Role, User
from app.services.credentials import CredentialStore
from app.services.errors import (
    ForbiddenError,
    InvalidCredentialsError,
    MalformedTokenError,
    PersistenceError,
    RoleChangedError,
    UserAlreadyExistsError,
)
from app.services.session_ledger import SessionLedger

logger = logging.getLogger(__name__)


class AuthService:
    """
    Credential and session authority.

    validate() re-reads the user on every call: a role change takes effect on
    the next request instead of waiting for the token to expire. There is no
    revocation list, so logout() only removes the advisory session row.
    """

    def __init__(
        self,
        *,
        credentials: CredentialStore,
        sessions: SessionLedger,
        hasher: PasswordHasher,
        tokens: TokenAuthority,
    ) -> None:
        self.credentials = credentials
        self.sessions = sessions
        self.hasher = hasher
        self.tokens = tokens

    def signup(self, email: str, password: str, role: Role = Role.USER) -> User:
        """
        Register a user. The password is hashed before anything is persisted.

        Raises UserAlreadyExistsError, PasswordHashingError or PersistenceError.
        A failed insert just discards the computed hash.
        """
        if self.credentials.get_by_email(email) is not None:
            raise UserAlreadyExistsError("User already exists.")
        password_hash = self.hasher.hash(password)
        user = self.credentials.create(email, password_hash, Role(role))
        logger.info("User created", extra={"user_id": user.id, "role": user.role})
        return user

    def login(self, email: str, password: str) -> tuple[str, User]:
        """Return a signed token and the user. Unknown email and wrong password look the same."""
        user = self.credentials.get_by_email(email)
        if user is None:
            self.hasher.verify_dummy(password)
            raise InvalidCredentialsError("Invalid email or password.")
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password.")

        token = self.start_session(user)
        logger.info("User logged in", extra={"user_id": user.id})
        return token, user

    def start_session(self, user: User) -> str:
        """
        Issue a token for an already authenticated user and record it in the ledger.

        Raises ForbiddenError when the stored role is not one tokens can carry.
        """
        try:
            role = Role(user.role)
        except ValueError as e:
            raise ForbiddenError("Account role is not recognised.", cause=e) from e
        token, claims = self.tokens.issue(user.id, role)
        try:
            self.sessions.record(user.id, token, claims.expires_at)
        except PersistenceError as e:
            # The token is valid on its own; the ledger is audit only.
            logger.warning(
                "Session ledger write failed",
                extra={"user_id": user.id, "reason": e.message},
            )
        return token

    def validate(self, token: str) -> User:
        """
        Verify signature and expiry, then check the live role.

        Raises MalformedTokenError, BadSignatureError, TokenExpiredError,
        RoleChangedError or PersistenceError.
        """
        user, _ = self.validate_with_claims(token)
        return user

    def validate_with_claims(self, token: str) -> tuple[User, Claims]:
        claims = self.tokens.decode(token)
        user = self.credentials.get_by_id(claims.user_id)
        if user is None:
            raise MalformedTokenError("Token subject does not exist.")
        # A stored role outside Role also counts as a change.
        if user.role != claims.role.value:
            raise RoleChangedError("User role has changed, please login again.")
        return user, claims

    def logout(self, token: str) -> None:
        """Delete the session row for this token. The token stays valid until exp."""
        deleted = self.sessions.delete_by_token(token)
        if deleted == 0:
            logger.info("Logout found no session row")

    def cleanup_expired_sessions(self) -> int:
        """Housekeeping only; never affects validation."""
        return self.sessions.delete_expired(self.tokens.now())

    def change_role(self, user_id: int, role: Role) -> User:
        """Administrative promotion or demotion. Outstanding tokens of the user stop validating."""
        user = self.credentials.update_role(user_id, Role(role))
        logger.info("User role changed", extra={"user_id": user.id, "role": user.role})
        return user
