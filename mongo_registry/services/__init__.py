"""
Services built on top of the registry.
"""
from mongo_registry.services.health import readiness_check
from mongo_registry.services.notification_bus import (
    BusForwarder,
    LocalNotificationBus,
    NotificationBus,
    RedisNotificationBus,
)

__all__ = [
    "readiness_check",
    "BusForwarder",
    "LocalNotificationBus",
    "NotificationBus",
    "RedisNotificationBus",
]
