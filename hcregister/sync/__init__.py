"""Multi-view synchronization: channel, presence, backend and session."""

from hcregister.sync.backend import BackendClient
from hcregister.sync.channel import (
    DATA_UPDATE,
    USER_PING,
    EventBus,
    InProcessChannel,
    RedisChannel,
    SyncChannel,
    create_channel,
    get_event_bus,
)
from hcregister.sync.presence import PresenceTracker
from hcregister.sync.session import SessionState, SyncSession

__all__ = [
    "DATA_UPDATE",
    "USER_PING",
    "BackendClient",
    "EventBus",
    "InProcessChannel",
    "PresenceTracker",
    "RedisChannel",
    "SessionState",
    "SyncChannel",
    "SyncSession",
    "create_channel",
    "get_event_bus",
]
