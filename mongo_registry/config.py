"""
Configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from mongo_registry.database.connection import ConnectionConfig


class Settings(BaseSettings):
    """Registry settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # MongoDB
    mongo_host: str = "0.0.0.0"
    mongo_port: int = 27017
    mongo_user: Optional[str] = None
    mongo_pass: Optional[str] = None
    mongo_db: str = "test"
    default_connection: str = "default"
    server_selection_timeout_ms: int = 5000

    # Notification bus (Redis pub/sub)
    redis_host: str = "redis"
    redis_port: int = 6379
    notifications_enabled: bool = False

    # Logging
    log_level: str = "INFO"

    def connection_config(self) -> ConnectionConfig:
        """Build the default connection's config."""
        return ConnectionConfig(
            user=self.mongo_user,
            password=self.mongo_pass,
            host=self.mongo_host,
            port=self.mongo_port,
            name=self.mongo_db,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
