"""
A single named MongoDB connection.

Wraps one motor client and surfaces its lifecycle as two events:

- ``ready``: fired once, when the server first answers.
- ``error``: fired on every failed probe or server heartbeat. Never raised.
"""
import asyncio
import logging
from typing import Any, Callable, Mapping, Optional, Union
from urllib.parse import quote_plus

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pymongo import monitoring

from mongo_registry.core.events import EventChannel, Listener

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 27017

ClientFactory = Callable[..., AsyncIOMotorClient]


class ConnectionConfig(BaseModel):
    """
    Configuration for one MongoDB connection.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    user: Optional[str] = Field(None, description="Database username")
    password: Optional[str] = Field(
        None,
        alias="pass",
        description="Database password, only used together with user",
    )
    host: str = Field(default=DEFAULT_HOST, description="Database host")
    port: int = Field(default=DEFAULT_PORT, description="Database port")
    name: str = Field(..., min_length=1, description="Name of the database to use")

    @field_validator("host", mode="before")
    @classmethod
    def _default_host(cls, value: Any) -> Any:
        return value or DEFAULT_HOST

    @field_validator("port", mode="before")
    @classmethod
    def _default_port(cls, value: Any) -> Any:
        return value or DEFAULT_PORT

    @model_validator(mode="after")
    def _password_requires_user(self) -> "ConnectionConfig":
        if self.password and not self.user:
            raise ValueError("'pass' requires 'user' to be set")
        return self

    def to_uri(self) -> str:
        """Build the MongoDB connection URI for this config."""
        credentials = ""
        if self.user:
            credentials = quote_plus(self.user)
            if self.password:
                credentials += ":" + quote_plus(self.password)
            credentials += "@"

        return f"mongodb://{credentials}{self.host}:{self.port}/{self.name}"


class _HeartbeatListener(monitoring.ServerHeartbeatListener):
    """Forwards pymongo heartbeat results to the owning connection."""

    def __init__(self, connection: "Connection"):
        self._connection = connection

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        self._connection._dispatch(self._connection._mark_ready)

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        self._connection._dispatch(self._connection._emit_error, event.reply)


class Connection:
    """
    A named MongoDB connection.

    The client is opened on construction and never blocks; the server is
    contacted in the background. Callers can fetch collections right away,
    the driver queues operations until the server is reachable.

    Args:
        name: Unique connection name within a registry
        config: Connection config, as a mapping or ConnectionConfig
        client_factory: Callable building the driver client from a URI.
            Defaults to AsyncIOMotorClient.
        **client_options: Extra keyword arguments for the driver client
    """

    def __init__(
        self,
        name: str,
        config: Union[ConnectionConfig, Mapping[str, Any]],
        client_factory: Optional[ClientFactory] = None,
        **client_options: Any,
    ):
        if not isinstance(config, ConnectionConfig):
            config = ConnectionConfig.model_validate(config)

        self._name = name
        self._config = config
        self._events = EventChannel()
        self._ready = asyncio.Event()
        self._closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._probe_task: Optional[asyncio.Task] = None

        factory = client_factory or AsyncIOMotorClient
        self._client = factory(
            config.to_uri(),
            event_listeners=[_HeartbeatListener(self)],
            **client_options,
        )
        self._database: AsyncIOMotorDatabase = self._client[config.name]

        self._start_probe()

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def client(self) -> AsyncIOMotorClient:
        """The underlying driver client."""
        return self._client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        return self._database

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def closed(self) -> bool:
        return self._closed

    def collection(self, name: str) -> AsyncIOMotorCollection:
        """
        Get a collection from this connection's database.

        Args:
            name: Collection name

        Returns:
            The driver's collection handle
        """
        return self._database[name]

    def close(self) -> "Connection":
        """
        Close the driver client.

        Returns:
            Self, for chaining
        """
        if self._closed:
            return self

        self._closed = True
        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
        self._client.close()
        logger.debug(f"Closed database connection '{self._name}'")
        return self

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the server has answered at least once.

        Args:
            timeout: Seconds to wait, None waits forever

        Returns:
            True if the connection is ready, False on timeout or if closed
        """
        if self._closed:
            return self._ready.is_set()

        self._start_probe()
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def ping(self) -> dict:
        """Ping the server, raising the driver's error on failure."""
        return await self._client.admin.command("ping")

    # Events

    def on(self, event: str, listener: Listener) -> "Connection":
        self._events.on(event, listener)
        return self

    def once(self, event: str, listener: Listener) -> "Connection":
        self._events.once(event, listener)
        return self

    def off(self, event: str, listener: Listener) -> "Connection":
        self._events.off(event, listener)
        return self

    def listener_count(self, event: Optional[str] = None) -> int:
        return self._events.listener_count(event)

    def _start_probe(self) -> None:
        if self._probe_task is not None or self._closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; wait_ready() starts the probe later.
            return

        self._loop = loop
        self._probe_task = loop.create_task(self._probe())

    async def _probe(self) -> None:
        try:
            await self.ping()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._emit_error(e)
            return
        self._mark_ready()

    def _dispatch(self, callback: Callable[..., None], *args: Any) -> None:
        """Run a callback on the connection's loop, from any thread."""
        if self._closed:
            return

        loop = self._loop
        if loop is None or loop.is_closed():
            callback(*args)
            return
        loop.call_soon_threadsafe(callback, *args)

    def _mark_ready(self) -> None:
        if self._closed or self._ready.is_set():
            return
        self._ready.set()
        logger.info(f"Database connection '{self._name}' is ready")
        self._events.emit("ready", self)

    def _emit_error(self, error: BaseException) -> None:
        if self._closed:
            return
        logger.warning(f"Database connection '{self._name}' error: {error}")
        self._events.emit("error", self, error)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self._name}', db='{self._config.name}')"
