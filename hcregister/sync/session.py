"""Per-view sync session.

A SyncSession is the context object of one logged-in view. It owns the
record store, the channel subscriptions, the presence ping task and the
"syncing" indicator timer, and walks the state machine

    LoggedOut -> LoadingLocalCache -> (SyncingFromBackend) -> Ready

Broadcasting, receiving and presence only run in Ready. ``logout()`` from
any state tears everything down and returns to LoggedOut.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

import structlog
from pydantic import ValidationError

from hcregister.config import AppConfig, get_config
from hcregister.exceptions import BackendError, BackupImportError, SessionStateError
from hcregister.models import HouseConnectionRecord, SharedState, User
from hcregister.register.operations import Mutation
from hcregister.store.local_cache import LocalCache
from hcregister.store.record_store import RecordStore
from hcregister.sync.backend import BackendClient
from hcregister.sync.backup import (
    backup_filename,
    build_backup,
    dumps_backup,
    merge_logs,
    merge_records,
    parse_backup,
)
from hcregister.sync.channel import DATA_UPDATE, USER_PING, EventBus, SyncChannel, create_channel
from hcregister.sync.presence import PresenceTracker

logger = structlog.get_logger(__name__)

Notifier = Callable[[str], None]


class SessionState(str, Enum):
    LOGGED_OUT = "LoggedOut"
    LOADING_LOCAL_CACHE = "LoadingLocalCache"
    SYNCING_FROM_BACKEND = "SyncingFromBackend"
    READY = "Ready"


def _log_notice(message: str) -> None:
    logger.info("session_notice", message=message)


class SyncSession:
    """One view's connection to the shared register.

    Example:
        >>> session = SyncSession(cache=LocalCache(), backend=BackendClient(cfg.backend))
        >>> await session.login(User.mock_login("alice"))
        >>> await session.apply(new_record(session.store.records, "L1", by="alice"))
        >>> await session.logout()
    """

    def __init__(
        self,
        cache: LocalCache | None = None,
        backend: BackendClient | None = None,
        *,
        config: AppConfig | None = None,
        store: RecordStore | None = None,
        channel_factory: Callable[[], SyncChannel] | None = None,
        bus: EventBus | None = None,
        notify: Notifier | None = None,
    ):
        self.config = config or get_config()
        sync = self.config.sync
        self.cache = cache or LocalCache(storage=self.config.storage)
        self.backend = backend
        self.store = store or RecordStore(log_limit=sync.activity_log_limit)
        self.presence = PresenceTracker(ttl_seconds=sync.presence_ttl_seconds)
        self.notify = notify or _log_notice
        self._channel_factory = channel_factory or (lambda: create_channel(sync, bus))

        self.state = SessionState.LOGGED_OUT
        self.user: User | None = None
        self.is_syncing = False

        self._channel: SyncChannel | None = None
        self._unsubscribes: list[Callable[[], None]] = []
        self._presence_task: asyncio.Task | None = None
        self._indicator: asyncio.TimerHandle | None = None

    # --- lifecycle -----------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        logger.debug("session_state", previous=self.state.value, state=state.value)
        self.state = state

    async def login(self, user: User) -> None:
        """Start a session: local cache, optional backend sync, then Ready."""
        if self.state != SessionState.LOGGED_OUT:
            raise SessionStateError(f"Cannot log in from state {self.state.value}")

        self.user = user
        self.cache.save_session(user)
        self._set_state(SessionState.LOADING_LOCAL_CACHE)
        self.store.replace(self.cache.load_records(), self.cache.load_activities())
        logger.info(
            "local_cache_loaded",
            user=user.username,
            records=len(self.store.records),
            activities=len(self.store.activities),
        )

        if self.backend is not None:
            self._set_state(SessionState.SYNCING_FROM_BACKEND)
            state = await self.backend.fetch_state()
            # logout() may have run while the fetch was in flight
            if self.state != SessionState.SYNCING_FROM_BACKEND:
                logger.info("backend_sync_discarded", reason="logged out during fetch")
                return
            self._install_backend_state(state)

        await self._enter_ready()

    async def resume(self) -> User | None:
        """Log the persisted session user back in, if there is one."""
        user = self.cache.load_session()
        if user is not None:
            await self.login(user)
        return user

    async def _enter_ready(self) -> None:
        channel = self._channel_factory()
        self._unsubscribes = [
            channel.subscribe(DATA_UPDATE, self._on_data_update),
            channel.subscribe(USER_PING, self._on_user_ping),
        ]
        await channel.open()
        self._channel = channel
        self._set_state(SessionState.READY)
        self._presence_task = asyncio.create_task(self._presence_loop())
        logger.info("session_ready", user=self.user.username, channel=channel.name)

    async def logout(self) -> None:
        """Stop timers, leave the channel and forget the session entry.

        Always ends in LoggedOut; teardown failures are logged, not raised.
        """
        try:
            if self._presence_task is not None:
                self._presence_task.cancel()
                try:
                    await self._presence_task
                except asyncio.CancelledError:
                    pass
                except Exception:
                    logger.exception("presence_task_failed")
                self._presence_task = None

            if self._indicator is not None:
                self._indicator.cancel()
                self._indicator = None

            for unsubscribe in self._unsubscribes:
                unsubscribe()
            if self._channel is not None:
                try:
                    await self._channel.close()
                except Exception:
                    logger.exception("channel_close_failed", channel=self._channel.name)
        finally:
            self._presence_task = None
            self._indicator = None
            self._unsubscribes = []
            self._channel = None
            self.is_syncing = False
            self.presence.clear()
            self.cache.clear_session()
            if self.user is not None:
                logger.info("session_logged_out", user=self.user.username)
            self.user = None
            self._set_state(SessionState.LOGGED_OUT)

    def _require_ready(self) -> None:
        if self.state != SessionState.READY:
            raise SessionStateError(f"Session is {self.state.value}, not Ready")

    # --- local mutations and broadcast ---------------------------------

    async def update_records(
        self,
        records: Sequence[HouseConnectionRecord],
        action: str | None = None,
        target_ref: str | None = None,
    ) -> None:
        """Install a new record list, log it, persist and broadcast."""
        self._require_ready()
        self.store.commit(
            records,
            user=self.user.username if action else None,
            action=action,
            target_ref=target_ref,
        )
        await self.broadcast_update()
        self._flash_syncing(self.config.sync.local_indicator_seconds)

    async def apply(self, mutation: Mutation) -> Mutation:
        """Commit a register operation's result; no-ops are ignored."""
        if mutation.changed:
            await self.update_records(mutation.records, mutation.action, mutation.target_ref)
        return mutation

    async def broadcast_update(self) -> None:
        """Persist both collections locally, then announce them to other views."""
        snapshot = self.store.snapshot()
        self.cache.save_state(snapshot.records, snapshot.activities)
        if self.state == SessionState.READY and self._channel is not None:
            await self._channel.publish(DATA_UPDATE, snapshot.to_wire())

    async def _on_data_update(self, payload: dict[str, Any]) -> None:
        if self.state != SessionState.READY:
            return
        try:
            state = SharedState.model_validate(payload)
        except ValidationError as e:
            logger.warning("data_update_rejected", error=str(e))
            return
        self.store.replace(state.records, state.activities)
        self.cache.save_state(state.records, state.activities)
        self._flash_syncing(self.config.sync.receive_indicator_seconds)
        logger.debug("data_update_received", records=len(state.records))

    # --- presence ------------------------------------------------------

    async def announce_presence(self) -> None:
        if self.state == SessionState.READY and self._channel is not None:
            await self._channel.publish(USER_PING, self.user.to_wire())

    async def _presence_loop(self) -> None:
        interval = self.config.sync.presence_interval_seconds
        while True:
            try:
                await self.announce_presence()
            except Exception:
                # keep pinging; the channel may come back
                logger.exception("presence_ping_failed")
            await asyncio.sleep(interval)

    async def _on_user_ping(self, payload: dict[str, Any]) -> None:
        if self.state != SessionState.READY:
            return
        try:
            user = User.model_validate(payload)
        except ValidationError as e:
            logger.warning("user_ping_rejected", error=str(e))
            return
        if self.presence.seen(user):
            logger.info("user_online", user=user.username)

    @property
    def online_users(self) -> list[User]:
        return self.presence.online()

    # --- syncing indicator ---------------------------------------------

    def _flash_syncing(self, seconds: float) -> None:
        if self._indicator is not None:
            self._indicator.cancel()
        self.is_syncing = True
        self._indicator = asyncio.get_running_loop().call_later(seconds, self._clear_syncing)

    def _clear_syncing(self) -> None:
        self.is_syncing = False
        self._indicator = None

    # --- backend -------------------------------------------------------

    async def sync_from_backend(self) -> bool:
        """Replace local state with the shared document, when there is one."""
        if self.backend is None:
            return False
        return self._install_backend_state(await self.backend.fetch_state())

    def _install_backend_state(self, state: SharedState | None) -> bool:
        if state is None:
            logger.info("backend_sync_skipped", reason="no shared data")
            return False
        self.store.replace(state.records, state.activities)
        self.cache.save_state(state.records, state.activities)
        logger.info("backend_synced", records=len(state.records), activities=len(state.activities))
        return True

    async def save_to_backend(self) -> bool:
        """Push the current state to the backend and report the outcome."""
        if self.backend is None:
            self.notify("No shared backend configured.")
            return False
        snapshot = self.store.snapshot()
        try:
            await self.backend.save_state(snapshot.records, snapshot.activities)
        except BackendError as e:
            logger.error("backend_save_failed", error=str(e), status=e.status_code)
            self.notify(f"Failed to save to shared backend: {e}")
            return False
        self.notify(f"Saved {len(snapshot.records)} records to shared backend.")
        return True

    # --- portable backup -----------------------------------------------

    def export_backup(self) -> tuple[str, str]:
        """Returns (file name, JSON text) of a backup of the current state."""
        backup = build_backup(
            self.store.records,
            self.store.activities,
            exported_by=self.user.username if self.user else "unknown",
            version=self.config.export.backup_version,
        )
        return backup_filename(), dumps_backup(backup)

    async def import_backup(self, text: str | bytes, source_name: str = "backup") -> int:
        """Merge a backup into the register.

        Returns:
            Number of records in the backup (0 when it could not be parsed)
        """
        self._require_ready()
        try:
            backup = parse_backup(text)
        except BackupImportError as e:
            logger.warning("backup_import_failed", source=source_name, error=str(e))
            self.notify("Failed to parse backup file. Ensure it is a valid .hcf file.")
            return 0

        merged = merge_records(self.store.records, backup.records)
        self.store.set_activities(
            merge_logs(backup.logs, self.store.activities, self.config.sync.activity_log_limit)
        )
        await self.update_records(merged, "merged data from portable backup", source_name)
        self.notify(f"Successfully merged {len(backup.records)} records from backup.")
        return len(backup.records)
