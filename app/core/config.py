"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "sqlite://",
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
    "postgres+psycopg2://",
)

# Symmetric signing only: the secret never leaves the server.
VALID_JWT_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"

    # SQLite for local dev; Postgres in production.
    DATABASE_URL: str = "sqlite:///./projectkit.db"

    # JWT authentication. Rotating JWT_SECRET invalidates every outstanding token.
    JWT_SECRET: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_SECONDS: int = 3600

    # Blob storage: one file per stored object under STORAGE_PATH.
    STORAGE_PATH: str = "./storage"
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024  # 50 MB

    # Maintenance: blobs without metadata younger than this are left alone
    # (they may belong to a store() that has not inserted its row yet).
    ORPHAN_GRACE_MINUTES: int = 60

    # Initial service account created by app.scripts.seed when none exists.
    SEED_SERVICE_EMAIL: str = "admin@projectkit.local"
    SEED_SERVICE_PASSWORD: SecretStr | None = None

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must be set and non-empty")
        if not any(v.strip().startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a SQLite or PostgreSQL URL (e.g. sqlite:///./app.db or postgresql://...)"
            )
        return v.strip()

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value() or not v.get_secret_value().strip():
            raise ValueError("JWT_SECRET must be set and non-empty")
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_ALGORITHM must be set and non-empty")
        alg = v.strip().upper()
        if alg not in VALID_JWT_ALGORITHMS:
            raise ValueError(
                f"JWT_ALGORITHM must be one of {sorted(VALID_JWT_ALGORITHMS)}"
            )
        return alg

    @field_validator("JWT_EXPIRE_SECONDS")
    @classmethod
    def validate_jwt_expire_seconds(cls, v: int) -> int:
        if v < 60 or v > 604800:
            raise ValueError(
                "JWT_EXPIRE_SECONDS must be between 60 and 604800 (1 min to 7 days)"
            )
        return v

    @field_validator("STORAGE_PATH")
    @classmethod
    def validate_storage_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("STORAGE_PATH must be set and non-empty")
        return v.strip()

    @field_validator("MAX_UPLOAD_BYTES")
    @classmethod
    def validate_max_upload_bytes(cls, v: int) -> int:
        if v < 1 or v > 1024 * 1024 * 1024:
            raise ValueError("MAX_UPLOAD_BYTES must be between 1 and 1073741824 (1 GB)")
        return v

    @field_validator("ORPHAN_GRACE_MINUTES")
    @classmethod
    def validate_orphan_grace_minutes(cls, v: int) -> int:
        if v < 1 or v > 10080:
            raise ValueError(
                "ORPHAN_GRACE_MINUTES must be between 1 and 10080 (1 min to 7 days)"
            )
        return v

    @model_validator(mode="after")
    def reject_default_secret_in_prod(self) -> "Settings":
        if self.APP_ENV == "prod" and self.JWT_SECRET.get_secret_value() == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be changed from the default when APP_ENV=prod")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
