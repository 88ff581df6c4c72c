"""Presence tracking for the "who else is online" indicator.

Views announce their user every ping interval. Receivers keep one entry per
username. Entries that have not been refreshed within ``ttl_seconds`` are
dropped so a view that closed without logging out eventually disappears;
``ttl_seconds=0`` keeps entries forever.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from hcregister.models import User


@dataclass
class PresenceEntry:
    user: User
    last_seen: float


class PresenceTracker:
    def __init__(self, ttl_seconds: float = 10.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, PresenceEntry] = {}

    def seen(self, user: User) -> bool:
        """Record a ping. Returns True when the user was not already present."""
        self.expire()
        is_new = user.username not in self._entries
        if is_new:
            self._entries[user.username] = PresenceEntry(user=user, last_seen=self._clock())
        else:
            self._entries[user.username].last_seen = self._clock()
        return is_new

    def expire(self) -> list[str]:
        """Drop stale entries; returns the usernames removed."""
        if self.ttl_seconds <= 0:
            return []
        cutoff = self._clock() - self.ttl_seconds
        stale = [name for name, entry in self._entries.items() if entry.last_seen < cutoff]
        for name in stale:
            del self._entries[name]
        return stale

    def online(self) -> list[User]:
        """Users currently considered present, in first-seen order."""
        self.expire()
        return [entry.user for entry in self._entries.values()]

    def clear(self) -> None:
        self._entries.clear()
