"""Durable user records keyed by email and id."""

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.user import Role, User
from app.services.errors import NotFoundError, PersistenceError, UserAlreadyExistsError

logger = logging.getLogger(__name__)


class CredentialStore:
    """Narrow query interface over the users table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_email(self, email: str) -> User | None:
        try:
            return self.db.query(User).filter(User.email == email).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to look up user by email.", cause=e) from e

    def get_by_id(self, user_id: int) -> User | None:
        try:
            return self.db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to look up user by id.", cause=e) from e

    def list_users(self) -> list[User]:
        try:
            return self.db.query(User).order_by(User.id).all()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to list users.", cause=e) from e

    def count_by_role(self, role: Role) -> int:
        try:
            return (
                self.db.query(func.count(User.id))
                .filter(User.role == Role(role).value)
                .scalar()
                or 0
            )
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to count users.", cause=e) from e

    def create(self, email: str, password_hash: str, role: Role) -> User:
        """
        Insert a user and return it with the store-assigned id.

        The unique index on email is the real duplicate guard; an IntegrityError
        here means a concurrent signup won the race.
        """
        user = User(email=email, password_hash=password_hash, role=Role(role).value)
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError("User already exists.", cause=e) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to create user.", cause=e) from e
        self.db.refresh(user)
        return user

    def update_role(self, user_id: int, role: Role) -> User:
        user = self.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        user.role = Role(role).value
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to update user role.", cause=e) from e
        self.db.refresh(user)
        return user
