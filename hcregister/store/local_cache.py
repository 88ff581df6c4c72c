"""Local durable cache.

The view's persisted mirror of the record store: two string-keyed JSON
entries (records, activities) plus the logged-in user's session entry, held
in a small SQLite key/value table. Reads and writes are synchronous.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from pydantic import TypeAdapter, ValidationError
from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from hcregister.config import StorageConfig, get_config
from hcregister.db.connection import create_cache_engine
from hcregister.db.models import CacheEntryModel
from hcregister.models import ActivityLog, HouseConnectionRecord, User

logger = structlog.get_logger(__name__)

_records_adapter = TypeAdapter(list[HouseConnectionRecord])
_activities_adapter = TypeAdapter(list[ActivityLog])


class LocalCache:
    """Key/value durable storage with typed helpers for register state."""

    def __init__(self, engine: Engine | None = None, storage: StorageConfig | None = None):
        self.storage = storage or get_config().storage
        self.engine = engine or create_cache_engine(self.storage.url)

    # --- raw key/value -------------------------------------------------

    def get_item(self, key: str) -> str | None:
        with Session(self.engine) as session:
            return session.scalar(select(CacheEntryModel.value).where(CacheEntryModel.key == key))

    def set_item(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            session.merge(CacheEntryModel(key=key, value=value))
            session.commit()

    def remove_item(self, key: str) -> None:
        with Session(self.engine) as session:
            session.execute(delete(CacheEntryModel).where(CacheEntryModel.key == key))
            session.commit()

    # --- register state ------------------------------------------------

    def load_records(self) -> list[HouseConnectionRecord]:
        """Cached records; empty when absent or unreadable."""
        raw = self.get_item(self.storage.records_key)
        if raw is None:
            return []
        try:
            return _records_adapter.validate_json(raw)
        except ValidationError as e:
            logger.error("local_cache_records_unreadable", key=self.storage.records_key, error=str(e))
            return []

    def load_activities(self) -> list[ActivityLog]:
        """Cached activity log; empty when absent or unreadable."""
        raw = self.get_item(self.storage.activities_key)
        if raw is None:
            return []
        try:
            return _activities_adapter.validate_json(raw)
        except ValidationError as e:
            logger.error("local_cache_activities_unreadable", key=self.storage.activities_key, error=str(e))
            return []

    def save_records(self, records: Sequence[HouseConnectionRecord]) -> None:
        self.set_item(
            self.storage.records_key,
            _records_adapter.dump_json(list(records), by_alias=True, exclude_none=True).decode(),
        )

    def save_activities(self, activities: Sequence[ActivityLog]) -> None:
        self.set_item(
            self.storage.activities_key,
            _activities_adapter.dump_json(list(activities), by_alias=True, exclude_none=True).decode(),
        )

    def save_state(
        self,
        records: Sequence[HouseConnectionRecord],
        activities: Sequence[ActivityLog],
    ) -> None:
        self.save_records(records)
        self.save_activities(activities)

    # --- session entry -------------------------------------------------

    def load_session(self) -> User | None:
        raw = self.get_item(self.storage.session_key)
        if raw is None:
            return None
        try:
            return User.model_validate_json(raw)
        except ValidationError as e:
            logger.error("local_cache_session_unreadable", error=str(e))
            return None

    def save_session(self, user: User) -> None:
        self.set_item(self.storage.session_key, user.model_dump_json(by_alias=True))

    def clear_session(self) -> None:
        self.remove_item(self.storage.session_key)
