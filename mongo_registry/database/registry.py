"""
Database registry - named connections with a default.

The registry owns every Connection it creates. Lookups come in two flavours:

- strict: ``disconnect``, ``set_default`` and ``collection`` raise
  UndefinedConnectionError for unknown names.
- permissive: ``connection`` returns None for unknown names.

Events emitted on the registry channel, each with the Connection first:

- ``ready(connection)``
- ``error(connection, error)``
- ``disconnect(connection)``
- ``default(connection)``
"""
import logging
import threading
from functools import lru_cache
from typing import Any, Mapping, Optional, Union

from motor.motor_asyncio import AsyncIOMotorCollection

from mongo_registry.core.events import EventChannel, Listener
from mongo_registry.database.connection import ClientFactory, Connection, ConnectionConfig
from mongo_registry.database.errors import UndefinedConnectionError

logger = logging.getLogger(__name__)


class DatabaseRegistry:
    """
    Registry of named database connections.

    Every operation runs under one lock so the connection map and the
    default name always change together.

    Args:
        client_factory: Driver client factory handed to every Connection.
            Defaults to AsyncIOMotorClient.
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self._client_factory = client_factory
        self._connections: dict[str, Connection] = {}
        self._default: Optional[str] = None
        self._events = EventChannel()
        self._lock = threading.RLock()

    def connect(
        self,
        name: str,
        config: Union[ConnectionConfig, Mapping[str, Any]],
        make_default: bool = False,
        **client_options: Any,
    ) -> "DatabaseRegistry":
        """
        Set up a new connection.

        Connecting a name that is already registered does nothing, the
        existing connection and default are kept.

        Args:
            name: Name to give the connection
            config: Connection config (user, pass, host, port, name)
            make_default: Make this the default connection. The first
                connection always becomes the default.
            **client_options: Extra keyword arguments for the driver client

        Returns:
            Self, for chaining
        """
        with self._lock:
            if name in self._connections:
                logger.debug(f"Database connection '{name}' already exists, skipping")
                return self

            connection = Connection(
                name,
                config,
                client_factory=self._client_factory,
                **client_options,
            )
            self._connections[name] = connection
            if make_default or self._default is None:
                self._default = name

            connection.on("ready", self._on_ready)
            connection.on("error", self._on_error)

            logger.info(
                f"Connected database '{name}' ({connection.config.host}:"
                f"{connection.config.port}/{connection.config.name})"
            )
            return self

    def disconnect(self, name: Optional[str] = None) -> "DatabaseRegistry":
        """
        Close and remove a connection.

        Args:
            name: Connection to close, the default when omitted

        Returns:
            Self, for chaining

        Raises:
            UndefinedConnectionError: If the connection isn't registered
        """
        with self._lock:
            name = self._resolve(name)
            connection = self._connections[name]

            connection.close()
            del self._connections[name]
            if self._default == name:
                self._default = None

            logger.info(f"Disconnected database '{name}'")
            self._events.emit("disconnect", connection)
            return self

    def set_default(self, name: str) -> "DatabaseRegistry":
        """
        Set the default connection.

        Raises:
            UndefinedConnectionError: If the connection isn't registered
        """
        with self._lock:
            if name not in self._connections:
                raise UndefinedConnectionError(name)

            self._default = name
            logger.info(f"Default database connection set to '{name}'")
            self._events.emit("default", self._connections[name])
            return self

    def get_default(self) -> Optional[str]:
        """Get the default connection's name, or None if unset."""
        with self._lock:
            return self._default

    def collection(
        self,
        collection_name: str,
        connection_name: Optional[str] = None,
    ) -> AsyncIOMotorCollection:
        """
        Get a collection from a connection.

        Args:
            collection_name: Name of the collection
            connection_name: Connection to use, the default when omitted

        Returns:
            The driver's collection handle

        Raises:
            UndefinedConnectionError: If the connection isn't registered
        """
        with self._lock:
            name = self._resolve(connection_name)
            return self._connections[name].collection(collection_name)

    def connection(self, name: Optional[str] = None) -> Optional[Connection]:
        """
        Get a connection by name, the default when omitted.

        This is the permissive lookup: an unknown name, or no default, gives
        None (a falsy sentinel) instead of raising UndefinedConnectionError.
        """
        with self._lock:
            if not name:
                name = self._default
            if name is None:
                return None
            return self._connections.get(name)

    def connections(self) -> list[str]:
        """List the registered connection names."""
        with self._lock:
            return list(self._connections)

    def teardown(self) -> "DatabaseRegistry":
        """Close and drop every connection and clear the default."""
        with self._lock:
            for name in list(self._connections):
                self.disconnect(name)
            self._default = None
            return self

    # Events

    def on(self, event: str, listener: Listener) -> "DatabaseRegistry":
        self._events.on(event, listener)
        return self

    def once(self, event: str, listener: Listener) -> "DatabaseRegistry":
        self._events.once(event, listener)
        return self

    def off(self, event: str, listener: Listener) -> "DatabaseRegistry":
        self._events.off(event, listener)
        return self

    def _on_ready(self, connection: Connection) -> None:
        self._events.emit("ready", connection)

    def _on_error(self, connection: Connection, error: BaseException) -> None:
        self._events.emit("error", connection, error)

    def _resolve(self, name: Optional[str]) -> str:
        if not name:
            name = self._default
        if name is None or name not in self._connections:
            raise UndefinedConnectionError(name)
        return name

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(connections={self.connections()!r}, "
            f"default={self.get_default()!r})"
        )


@lru_cache
def get_registry() -> DatabaseRegistry:
    """Get the process-wide registry."""
    return DatabaseRegistry()


def reset_registry() -> None:
    """Tear down the process-wide registry and drop it."""
    if get_registry.cache_info().currsize:
        get_registry().teardown()
    get_registry.cache_clear()
