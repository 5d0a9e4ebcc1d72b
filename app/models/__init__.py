"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.file import StoredFile
from app.models.session import UserSession
from app.models.user import Role, User

__all__ = ["Base", "Role", "StoredFile", "User", "UserSession"]
