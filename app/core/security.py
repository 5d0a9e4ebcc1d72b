"""Password hashing and JWT issuance/verification for authentication.

Passwords: argon2id via argon2-cffi. Memory-hard with a random salt per hash,
so two hashes of the same password never compare equal.

Tokens: PyJWT with a symmetric algorithm (HS256 by default). The claims are
exactly {sub, role, iat, exp}. Expiry is checked here against the authority's
own clock instead of PyJWT's wall clock so that `now <= exp` holds precisely
and tests can move time.

The signing secret is process-wide state: get_token_authority() builds the
authority once from settings and nothing mutates it afterwards. Rotating
JWT_SECRET (restart with a new value) invalidates every outstanding token.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import jwt
from argon2 import PasswordHasher as Argon2Hasher
from argon2 import Type
from argon2.exceptions import HashingError, InvalidHashError, VerificationError, VerifyMismatchError

from app.core.config import get_settings
from app.models.user import Role
from app.services.errors import (
    BadSignatureError,
    MalformedTokenError,
    PasswordHashingError,
    TokenExpiredError,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

REQUIRED_CLAIMS = ("sub", "role", "iat", "exp")

# Min/max lengths for email and password validation at the API boundary.
EMAIL_MIN_LEN = 3
EMAIL_MAX_LEN = 100
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


def utcnow() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


class PasswordHasher:
    """Salted argon2id hashing and verification of credentials."""

    def __init__(
        self,
        *,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
    ) -> None:
        self._hasher = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )
        # Verified against when the account does not exist, so that a login for
        # an unknown email costs the same as a wrong password.
        self._dummy_hash = self._hasher.hash("projectkit-timing-dummy")

    def hash(self, password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        try:
            return self._hasher.hash(password)
        except HashingError as e:
            raise PasswordHashingError("Password hashing failed.", cause=e) from e

    def verify(self, password: str, encoded: str) -> bool:
        """Verify a plain password against a stored hash."""
        try:
            return self._hasher.verify(encoded, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError):
            logger.warning("Stored password hash could not be verified")
            return False

    def verify_dummy(self, password: str) -> None:
        """Spend one verification on a fixed hash; the result is discarded."""
        self.verify(password, self._dummy_hash)


@dataclass(frozen=True)
class Claims:
    """Signed token payload: subject (user id as string), role snapshot, iat, exp."""

    sub: str
    role: Role
    iat: int
    exp: int

    @property
    def user_id(self) -> int:
        try:
            return int(self.sub)
        except (TypeError, ValueError) as e:
            raise MalformedTokenError("Token subject is not a user id.", cause=e) from e

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, UTC)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, UTC)

    def to_payload(self) -> dict[str, Any]:
        return {"sub": self.sub, "role": self.role.value, "iat": self.iat, "exp": self.exp}


class TokenAuthority:
    """Issues and verifies signed, time-bounded, role-carrying tokens."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = 3600,
        clock: Clock = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("TokenAuthority requires a non-empty secret")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def now(self) -> datetime:
        return self._clock()

    def issue(self, user_id: int, role: Role | str) -> tuple[str, Claims]:
        """Create a token for the user; returns the encoded token and its claims."""
        iat = int(self._clock().timestamp())
        claims = Claims(
            sub=str(user_id),
            role=Role(role),
            iat=iat,
            exp=iat + self.ttl_seconds,
        )
        token = jwt.encode(claims.to_payload(), self._secret, algorithm=self._algorithm)
        return token, claims

    def decode(self, token: str) -> Claims:
        """
        Verify signature and expiry and return the claims.

        Raises MalformedTokenError, BadSignatureError or TokenExpiredError.
        """
        if not token or not isinstance(token, str):
            raise MalformedTokenError("Token is empty.")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": list(REQUIRED_CLAIMS),
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise BadSignatureError("Token signature mismatch.", cause=e) from e
        except jwt.PyJWTError as e:
            raise MalformedTokenError("Token could not be decoded.", cause=e) from e

        claims = self._claims_from_payload(payload)
        if self._clock().timestamp() > claims.exp:
            raise TokenExpiredError("Token expired.")
        return claims

    @staticmethod
    def _claims_from_payload(payload: dict[str, Any]) -> Claims:
        sub = payload.get("sub")
        iat = payload.get("iat")
        exp = payload.get("exp")
        if not isinstance(sub, str) or not sub:
            raise MalformedTokenError("Token subject missing.")
        if not isinstance(iat, int) or not isinstance(exp, int):
            raise MalformedTokenError("Token timestamps must be integers.")
        try:
            role = Role(payload.get("role"))
        except ValueError as e:
            raise MalformedTokenError("Token role is not recognised.", cause=e) from e
        return Claims(sub=sub, role=role, iat=iat, exp=exp)


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Process-wide hasher (dummy hash computed once)."""
    return PasswordHasher()


@lru_cache
def get_token_authority() -> TokenAuthority:
    """Process-wide token authority built from settings at first use."""
    settings = get_settings()
    return TokenAuthority(
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
        ttl_seconds=settings.JWT_EXPIRE_SECONDS,
    )
