"""ORM model for stored file metadata (bytes live on the filesystem)."""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String

from app.models.base import Base

ORIGINAL_NAME_MAX_LEN = 512
MIME_TYPE_MAX_LEN = 255


class StoredFile(Base):
    """
    One row per blob under STORAGE_PATH.

    id is the random identifier generated at store time; stored_name is id plus
    the original extension. user_id never changes after insert.
    """

    __tablename__ = "files"

    id = Column(String(36), primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    original_name = Column(String(ORIGINAL_NAME_MAX_LEN), nullable=False)
    stored_name = Column(String(64), nullable=False, unique=True)
    size = Column(BigInteger, nullable=False)
    mime_type = Column(String(MIME_TYPE_MAX_LEN), nullable=True)
    storage_path = Column(String(1024), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
