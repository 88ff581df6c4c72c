"""Database layer for HC Register (local cache and backend document)."""

from hcregister.db.connection import create_cache_engine, get_session, init_db
from hcregister.db.models import Base, CacheEntryModel, SharedStateModel

__all__ = [
    "Base",
    "CacheEntryModel",
    "SharedStateModel",
    "create_cache_engine",
    "get_session",
    "init_db",
]
