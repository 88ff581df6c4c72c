"""In-memory record store.

Owns the record and activity-log collections of one view. Mutations come in
as whole new record lists (built by the register operations) together with
an optional log entry; the sync layer swaps both collections wholesale when
another view or the backend publishes newer state.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import structlog

from hcregister.exceptions import RecordNotFound
from hcregister.models import ActivityLog, HouseConnectionRecord, SharedState

logger = structlog.get_logger(__name__)

DEFAULT_LOG_LIMIT = 100

ChangeListener = Callable[[SharedState], None]


def prepend_logs(
    new: Sequence[ActivityLog],
    existing: Sequence[ActivityLog],
    limit: int = DEFAULT_LOG_LIMIT,
) -> list[ActivityLog]:
    """Newest-first activity list capped to ``limit`` entries."""
    return [*new, *existing][:limit]


class RecordStore:
    """Records plus their append-only (newest first, capped) activity log."""

    def __init__(self, log_limit: int = DEFAULT_LOG_LIMIT):
        self.log_limit = log_limit
        self._records: list[HouseConnectionRecord] = []
        self._activities: list[ActivityLog] = []
        self._listeners: list[ChangeListener] = []

    @property
    def records(self) -> list[HouseConnectionRecord]:
        return list(self._records)

    @property
    def activities(self) -> list[ActivityLog]:
        return list(self._activities)

    def snapshot(self) -> SharedState:
        return SharedState(records=self.records, activities=self.activities)

    def get(self, record_id: str) -> HouseConnectionRecord:
        for record in self._records:
            if record.id == record_id:
                return record
        raise RecordNotFound(record_id)

    def find_by_reference(self, reference: str) -> HouseConnectionRecord | None:
        if not reference:
            return None
        return next((r for r in self._records if r.reference == reference), None)

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot after every change."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def replace(
        self,
        records: Sequence[HouseConnectionRecord],
        activities: Sequence[ActivityLog],
    ) -> None:
        """Swap both collections wholesale (no merge)."""
        self._records = list(records)
        self._activities = list(activities)[: self.log_limit]
        self._notify()

    def commit(
        self,
        records: Sequence[HouseConnectionRecord],
        *,
        user: str | None = None,
        action: str | None = None,
        target_ref: str | None = None,
    ) -> ActivityLog | None:
        """Install a new record list and, with a user and action, log it.

        Returns:
            The activity entry that was prepended, if any
        """
        self._records = list(records)

        entry = None
        if user and action:
            entry = ActivityLog(user=user, action=action, target_ref=target_ref)
            self._activities = prepend_logs([entry], self._activities, self.log_limit)
            logger.debug("activity_logged", user=user, action=action, target_ref=target_ref)

        self._notify()
        return entry

    def set_activities(self, activities: Sequence[ActivityLog]) -> None:
        self._activities = list(activities)[: self.log_limit]
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
