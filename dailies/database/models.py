"""SQLAlchemy ORM models for Dailies."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, LargeBinary, String
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class KeyValueEntry(Base):
    """One opaque blob in the shared app/widget namespace."""

    __tablename__ = "kv_entries"

    key = Column(String(64), primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<KeyValueEntry key={self.key} bytes={len(self.value or b'')}>"
