"""ORM model for application users (auth and RBAC)."""

import enum
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, String, func

from app.models.base import Base


class Role(str, enum.Enum):
    """Account role carried in tokens and re-checked on every request."""

    USER = "user"
    SERVICE = "service"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    role: 'user' or 'service'. May be changed administratively; tokens issued
    under the previous role stop validating.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.USER.value)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
    )
