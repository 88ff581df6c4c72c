"""Record store and its local durable mirror."""

from hcregister.store.local_cache import LocalCache
from hcregister.store.record_store import DEFAULT_LOG_LIMIT, RecordStore, prepend_logs

__all__ = ["DEFAULT_LOG_LIMIT", "LocalCache", "RecordStore", "prepend_logs"]
