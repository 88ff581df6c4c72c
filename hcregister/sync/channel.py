"""Publish/subscribe channel between views of the same application.

Two operations matter to the sync layer: ``publish(topic, payload)`` and
``subscribe(topic, handler)``. Messages travel as JSON envelopes
``{"sender", "topic", "payload"}``; a view never receives its own messages,
and each receiver gets its own copy of the payload.

Implementations:
- InProcessChannel: views in one process share an EventBus (tests,
  embedded deployments). Delivery is in publish order.
- RedisChannel: views in different processes share a Redis pub/sub channel.
"""

from __future__ import annotations

import asyncio
import inspect
import json
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

import redis.asyncio as redis
import structlog

from hcregister.config import SyncConfig

logger = structlog.get_logger(__name__)

DATA_UPDATE = "DATA_UPDATE"
USER_PING = "USER_PING"

Handler = Callable[[dict[str, Any]], Awaitable[None] | None]


class SyncChannel(ABC):
    """Named broadcast channel scoped to one application instance."""

    def __init__(self, name: str):
        self.name = name
        self.sender_id = uuid4().hex
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self.is_open = False

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``topic``; returns an unsubscribe callable."""
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[topic]:
                self._handlers[topic].remove(handler)

        return unsubscribe

    def _envelope(self, topic: str, payload: dict[str, Any]) -> str:
        return json.dumps({"sender": self.sender_id, "topic": topic, "payload": payload})

    async def _dispatch(self, raw: str) -> None:
        try:
            envelope = json.loads(raw)
        except ValueError as e:
            logger.warning("channel_message_rejected", channel=self.name, error=str(e))
            return
        if not isinstance(envelope, dict):
            logger.warning("channel_message_rejected", channel=self.name, error="envelope is not an object")
            return
        if envelope.get("sender") == self.sender_id:
            return
        topic = envelope.get("topic")
        for handler in list(self._handlers.get(topic, ())):
            try:
                result = handler(envelope.get("payload") or {})
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # one failing view must not stop delivery to the rest
                logger.exception("channel_handler_failed", channel=self.name, topic=topic)

    @abstractmethod
    async def open(self) -> None:
        """Start receiving messages."""

    @abstractmethod
    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        """Announce ``payload`` to every other view on the channel."""

    @abstractmethod
    async def close(self) -> None:
        """Stop receiving and release the channel handle."""


class EventBus:
    """In-process medium shared by InProcessChannel instances."""

    def __init__(self):
        self._members: dict[str, list[InProcessChannel]] = defaultdict(list)

    def join(self, channel: InProcessChannel) -> None:
        if channel not in self._members[channel.name]:
            self._members[channel.name].append(channel)

    def leave(self, channel: InProcessChannel) -> None:
        if channel in self._members[channel.name]:
            self._members[channel.name].remove(channel)

    def members(self, name: str) -> list[InProcessChannel]:
        return list(self._members.get(name, ()))

    async def deliver(self, name: str, raw: str) -> None:
        for member in self.members(name):
            await member._dispatch(raw)


class InProcessChannel(SyncChannel):
    def __init__(self, name: str, bus: EventBus):
        super().__init__(name)
        self.bus = bus

    async def open(self) -> None:
        self.bus.join(self)
        self.is_open = True

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        if not self.is_open:
            return
        await self.bus.deliver(self.name, self._envelope(topic, payload))

    async def close(self) -> None:
        self.bus.leave(self)
        self._handlers.clear()
        self.is_open = False


class RedisChannel(SyncChannel):
    """Channel backed by Redis pub/sub for multi-process deployments."""

    def __init__(self, name: str, redis_url: str, client: redis.Redis | None = None):
        super().__init__(name)
        self.redis_url = redis_url
        self._client = client
        self._pubsub = None
        self._listener: asyncio.Task | None = None

    async def open(self) -> None:
        if self._client is None:
            self._client = redis.from_url(self.redis_url, decode_responses=True)
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(self.name)
        self._listener = asyncio.create_task(self._listen())
        self.is_open = True
        logger.info("redis_channel_open", channel=self.name)

    async def _listen(self) -> None:
        async for message in self._pubsub.listen():
            if message.get("type") != "message":
                continue
            data = message["data"]
            if isinstance(data, bytes):
                data = data.decode()
            await self._dispatch(data)

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        if not self.is_open:
            return
        await self._client.publish(self.name, self._envelope(topic, payload))

    async def close(self) -> None:
        self.is_open = False
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.name)
            await self._pubsub.aclose()
            self._pubsub = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._handlers.clear()


_default_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Process-wide bus for in-process channels (singleton)."""
    global _default_bus
    if _default_bus is None:
        _default_bus = EventBus()
    return _default_bus


def create_channel(config: SyncConfig, bus: EventBus | None = None) -> SyncChannel:
    """Channel for one session: Redis when REDIS_URL is set, in-process otherwise."""
    if config.redis_url and bus is None:
        return RedisChannel(config.channel_name, config.redis_url)
    return InProcessChannel(config.channel_name, bus or get_event_bus())
