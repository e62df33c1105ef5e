"""
mongo-registry - a registry of named MongoDB connections with a default.
"""
from mongo_registry.database import (
    Connection,
    ConnectionConfig,
    DatabaseRegistry,
    RegistryError,
    UndefinedConnectionError,
    get_registry,
    reset_registry,
)

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnectionConfig",
    "DatabaseRegistry",
    "RegistryError",
    "UndefinedConnectionError",
    "get_registry",
    "reset_registry",
]
