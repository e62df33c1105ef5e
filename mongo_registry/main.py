"""
Registry bootstrap and lifespan.

Connects the configured default database on startup and closes every
connection on shutdown.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mongo_registry.config import Settings, get_settings
from mongo_registry.core.logging import configure_logging
from mongo_registry.database.registry import DatabaseRegistry, get_registry
from mongo_registry.services.notification_bus import (
    BusForwarder,
    NotificationBus,
    RedisNotificationBus,
)

logger = logging.getLogger(__name__)


def connect_from_settings(
    registry: Optional[DatabaseRegistry] = None,
    settings: Optional[Settings] = None,
) -> DatabaseRegistry:
    """
    Connect the default database described by settings.

    Args:
        registry: Registry to connect, the process-wide one when omitted
        settings: Settings to use, the cached ones when omitted

    Returns:
        The registry
    """
    if registry is None:
        registry = get_registry()
    if settings is None:
        settings = get_settings()

    return registry.connect(
        settings.default_connection,
        settings.connection_config(),
        make_default=True,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


@asynccontextmanager
async def registry_lifespan(
    settings: Optional[Settings] = None,
    registry: Optional[DatabaseRegistry] = None,
    bus: Optional[NotificationBus] = None,
) -> AsyncIterator[DatabaseRegistry]:
    """
    Registry lifespan manager.

    Startup:
    - Configure logging from settings
    - Attach the notification bus (given, or Redis when enabled)
    - Connect the default database

    Shutdown (also when startup fails):
    - Close all database connections
    - Detach and close the notification bus
    """
    if settings is None:
        settings = get_settings()
    if registry is None:
        registry = get_registry()

    configure_logging(settings.log_level)

    owned_bus = None
    if bus is None and settings.notifications_enabled:
        bus = owned_bus = RedisNotificationBus.from_settings(settings)

    forwarder = BusForwarder(bus).attach(registry) if bus is not None else None

    try:
        logger.info("Starting database registry...")
        connect_from_settings(registry, settings)
        yield registry
    finally:
        logger.info("Shutting down database registry...")
        registry.teardown()
        if forwarder is not None:
            forwarder.detach()
        if owned_bus is not None:
            await owned_bus.close()
        logger.info("Database connections closed")
