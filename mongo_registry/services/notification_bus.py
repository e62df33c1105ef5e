"""
Process-wide notification bus adapters.

The registry never talks to a bus directly. A BusForwarder listens on the
registry's event channel and republishes every event as
``databases.<event>`` with the connection name and a payload.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from redis.asyncio import Redis

from mongo_registry.core.events import EventChannel
from mongo_registry.database.connection import Connection
from mongo_registry.database.registry import DatabaseRegistry

logger = logging.getLogger(__name__)

EVENT_PREFIX = "databases"
FORWARDED_EVENTS = ("error", "ready", "disconnect", "default")


class NotificationBus(ABC):
    """A publish-only notification channel."""

    @abstractmethod
    def publish(self, event: str, connection_name: str, payload: Any = None) -> None:
        """
        Publish an event.

        Args:
            event: Event name, e.g. "databases.ready"
            connection_name: Name of the connection the event is about
            payload: Event payload (error message for errors, else None)
        """


class LocalNotificationBus(NotificationBus):
    """
    In-process bus.

    Subscribers receive ``(event, connection_name, payload)``. Subscribing to
    ``"*"`` receives every event.
    """

    WILDCARD = "*"

    def __init__(self):
        self._channel = EventChannel()

    def subscribe(self, event: str, listener: Callable[..., Any]) -> None:
        self._channel.on(event, listener)

    def unsubscribe(self, event: str, listener: Callable[..., Any]) -> None:
        self._channel.off(event, listener)

    def publish(self, event: str, connection_name: str, payload: Any = None) -> None:
        self._channel.emit(event, event, connection_name, payload)
        self._channel.emit(self.WILDCARD, event, connection_name, payload)


class RedisNotificationBus(NotificationBus):
    """
    Bus publishing JSON messages over Redis pub/sub.

    Each event goes to the channel ``<channel_prefix>:<event>``, or ``<event>``
    when the prefix is empty. Publishing is scheduled on the running event
    loop; with no loop the message is dropped.
    Failures are logged and never reach the registry.
    """

    def __init__(self, client: Redis, channel_prefix: str = EVENT_PREFIX):
        self.client = client
        self.channel_prefix = channel_prefix
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings) -> "RedisNotificationBus":
        """Create a bus from Settings (redis_host / redis_port)."""
        client = Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            decode_responses=True,
        )
        return cls(client)

    def publish(self, event: str, connection_name: str, payload: Any = None) -> None:
        channel = f"{self.channel_prefix}:{event}" if self.channel_prefix else event
        message = json.dumps(
            {"event": event, "connection": connection_name, "payload": payload},
            default=str,
        )

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, dropped '{event}' for '{connection_name}'")
            return

        task = loop.create_task(self._publish(channel, message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, channel: str, message: str) -> None:
        try:
            await self.client.publish(channel, message)
        except Exception as e:
            logger.warning(f"Failed to publish to '{channel}': {e}")

    async def flush(self) -> None:
        """Wait for scheduled publishes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Flush pending publishes and close the Redis client."""
        await self.flush()
        await self.client.close()


class BusForwarder:
    """Forwards a registry's events to a NotificationBus."""

    def __init__(self, bus: NotificationBus):
        self.bus = bus
        self._registry: Optional[DatabaseRegistry] = None
        self._handlers: dict[str, Callable[..., None]] = {}

    @property
    def attached(self) -> bool:
        return self._registry is not None

    def attach(self, registry: DatabaseRegistry) -> "BusForwarder":
        """Start forwarding a registry's events, detaching any previous one."""
        if self._registry is not None:
            self.detach()

        for event in FORWARDED_EVENTS:
            handler = self._make_handler(event)
            registry.on(event, handler)
            self._handlers[event] = handler

        self._registry = registry
        return self

    def detach(self) -> None:
        """Stop forwarding."""
        if self._registry is None:
            return

        for event, handler in self._handlers.items():
            self._registry.off(event, handler)
        self._handlers.clear()
        self._registry = None

    def _make_handler(self, event: str) -> Callable[..., None]:
        bus_event = f"{EVENT_PREFIX}.{event}"

        def _forward(connection: Connection, error: Optional[BaseException] = None) -> None:
            payload = str(error) if error is not None else None
            self.bus.publish(bus_event, connection.name, payload)

        return _forward
