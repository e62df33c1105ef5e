"""
Database module - named MongoDB connections and the registry managing them.
"""
from mongo_registry.database.connection import Connection, ConnectionConfig
from mongo_registry.database.errors import RegistryError, UndefinedConnectionError
from mongo_registry.database.registry import (
    DatabaseRegistry,
    get_registry,
    reset_registry,
)

__all__ = [
    "Connection",
    "ConnectionConfig",
    "RegistryError",
    "UndefinedConnectionError",
    "DatabaseRegistry",
    "get_registry",
    "reset_registry",
]
