"""
Core module - Event channel and logging setup.
"""
from mongo_registry.core.events import EventChannel
from mongo_registry.core.logging import configure_logging

__all__ = [
    "EventChannel",
    "configure_logging",
]
