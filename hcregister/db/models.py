"""SQLAlchemy database models for HC Register.

Two small tables:
- local_cache: the view-side durable key/value mirror (records, logs, session)
- shared_state: the backend's single shared document (last write wins)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class CacheEntryModel(Base):
    """String-keyed JSON entry of the local durable cache."""

    __tablename__ = "local_cache"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<CacheEntry {self.key} ({len(self.value)} chars)>"


class SharedStateModel(Base):
    """The backend's shared mutable document.

    Only one row is ever used (id=1). Saves overwrite it wholesale with no
    versioning or locking; concurrent saves clobber each other.
    """

    __tablename__ = "shared_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    document: Mapped[dict] = mapped_column(JSON, nullable=False)
    saved_by: Mapped[str | None] = mapped_column(String(200))
    saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
