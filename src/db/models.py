"""ORM models for the durable blob store."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, LargeBinary, String

from src.db.base import Base


class BlobEntryModel(Base):
    """One opaque binary value stored under a string key."""

    __tablename__ = "blob_entries"

    key = Column(String(255), primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
