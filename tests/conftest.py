"""
Shared test configuration and fixtures for the login hub tests.

Provides a stub connection layer, a fresh session registry and a hub context wired to a
recording metrics client.
"""

import pytest
import pytest_asyncio

from uz.efael.hub.app.config import HubContext, Settings
from uz.efael.hub.app.hub import LoginHub
from uz.efael.hub.model.session import SessionRegistry
from tests.stubs import MockStatsdClient, StubConnection, StubConnectionFactory


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return Settings(_env_file=None, static_registrations={}, metrics_backend="none")


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def connection_factory():
    return StubConnectionFactory()


@pytest.fixture
def stub_connection():
    return StubConnection()


@pytest.fixture
def mock_statsd():
    return MockStatsdClient()


@pytest.fixture
def context(settings, registry, connection_factory, mock_statsd):
    return HubContext(
        settings=settings,
        registry=registry,
        connection_factory=connection_factory,
        metrics_client=mock_statsd,
    )


@pytest_asyncio.fixture
async def hub(settings, registry, connection_factory, mock_statsd):
    """A running hub; stopped after the test."""
    login_hub = LoginHub(
        connection_factory,
        settings=settings,
        metrics_client=mock_statsd,
        registry=registry,
    )
    await login_hub.start()
    yield login_hub
    await login_hub.stop()
