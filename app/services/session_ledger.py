"""Advisory record of issued tokens, for audit and cleanup only."""

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.session import UserSession
from app.services.errors import PersistenceError


class SessionLedger:
    """Narrow query interface over the sessions table. Never consulted for validation."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def record(self, user_id: int, token: str, expires_at: datetime) -> UserSession:
        row = UserSession(user_id=user_id, token=token, expires_at=expires_at)
        try:
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to record session.", cause=e) from e
        return row

    def delete_by_token(self, token: str) -> int:
        try:
            deleted = (
                self.db.query(UserSession)
                .filter(UserSession.token == token)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to delete session.", cause=e) from e
        return deleted

    def delete_expired(self, now: datetime) -> int:
        """Delete rows with expires_at < now. Idempotent."""
        try:
            deleted = (
                self.db.query(UserSession)
                .filter(UserSession.expires_at < now)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to delete expired sessions.", cause=e) from e
        return deleted

    def count_for_user(self, user_id: int) -> int:
        try:
            return self.db.query(UserSession).filter(UserSession.user_id == user_id).count()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to count sessions.", cause=e) from e
