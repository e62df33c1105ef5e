"""
Registry error types.
"""
from typing import Optional


class RegistryError(LookupError):
    """Base class for database registry errors."""


class UndefinedConnectionError(RegistryError):
    """Raised when an operation references a connection that isn't registered."""

    def __init__(self, name: Optional[str]):
        self.name = name
        super().__init__(f'The database connection "{name}" hasn\'t been defined.')
