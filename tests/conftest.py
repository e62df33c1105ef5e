"""
Global test fixtures for mongo-registry.

This module provides shared fixtures for all tests including:
- A fake motor client factory (unittest.mock)
- Registries wired to fake or in-memory clients (mongomock-motor)
- Mock Redis (fakeredis)
"""

import asyncio
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from mongo_registry.database.registry import DatabaseRegistry, reset_registry


# =============================================================================
# Driver Fakes
# =============================================================================

class FakeMotorClientFactory:
    """
    Stands in for AsyncIOMotorClient and records every client it builds.

    Each client is a MagicMock whose ``admin.command`` is an AsyncMock, so the
    readiness probe and ping() can be awaited.
    """

    def __init__(self, ping_error: Optional[BaseException] = None):
        self.ping_error = ping_error
        self.clients: list[MagicMock] = []

    def __call__(self, uri: str, **options: Any) -> MagicMock:
        client = MagicMock(name="AsyncIOMotorClient")
        client.uri = uri
        client.options = options
        if self.ping_error is not None:
            client.admin.command = AsyncMock(side_effect=self.ping_error)
        else:
            client.admin.command = AsyncMock(return_value={"ok": 1.0})
        self.clients.append(client)
        return client

    @property
    def last(self) -> MagicMock:
        return self.clients[-1]


async def hang_forever(*args, **kwargs):
    """Side effect for pings that never answer."""
    await asyncio.Event().wait()


def heartbeat_listener(client: MagicMock):
    """Get the pymongo heartbeat listener a Connection handed to its client."""
    return client.options["event_listeners"][0]


@pytest.fixture
def client_factory() -> FakeMotorClientFactory:
    """Fake motor client factory whose pings succeed."""
    return FakeMotorClientFactory()


@pytest.fixture
def failing_client_factory() -> FakeMotorClientFactory:
    """Fake motor client factory whose pings fail."""
    from pymongo.errors import ServerSelectionTimeoutError

    return FakeMotorClientFactory(ping_error=ServerSelectionTimeoutError("No servers found"))


@pytest.fixture
def db_config() -> dict:
    """Minimal connection config."""
    return {"name": "test"}


# =============================================================================
# Registry Fixtures
# =============================================================================

@pytest.fixture
def registry(client_factory):
    """A fresh registry using the fake client factory."""
    registry = DatabaseRegistry(client_factory=client_factory)
    yield registry
    registry.teardown()


@pytest.fixture
def mongomock_registry():
    """
    A registry whose connections use mongomock-motor in-memory clients.
    """
    try:
        from mongomock_motor import AsyncMongoMockClient
    except ImportError:
        pytest.skip("mongomock-motor not installed")

    def _factory(uri: str, **options: Any):
        return AsyncMongoMockClient()

    registry = DatabaseRegistry(client_factory=_factory)
    yield registry
    registry.teardown()


@pytest.fixture(autouse=True)
def reset_process_registry():
    """Drop the process-wide registry after every test."""
    yield
    reset_registry()


# =============================================================================
# Redis Fixtures (fakeredis)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_redis():
    """
    Create an async mock Redis client using fakeredis.
    """
    try:
        import fakeredis.aioredis
        redis_client = fakeredis.aioredis.FakeRedis(decode_responses=True)
        yield redis_client
        await redis_client.flushall()
        await redis_client.close()
    except ImportError:
        pytest.skip("fakeredis with aioredis not installed")
