"""
Shared fixtures for integration tests.

Each test gets a freshly built application (its own aggregator and flush
controller) and an httpx AsyncClient talking to it over ASGITransport.

Example:
    @pytest.mark.asyncio
    async def test_something(client):
        response = await client.post("/samples/?project=p", json={"foo": 1})
        assert response.status_code == 201
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hotpath_agent.core.config import Settings
from hotpath_agent.main import create_app
from hotpath_agent.samples.flush import FlushController


@pytest.fixture
def test_settings():
    """Settings for a test-mode agent that flushes after every second batch."""
    return Settings(LOG_LEVEL="INFO", TEST_MODE=True, CACHE_LENGTH=1)


@pytest.fixture
def test_app(test_settings):
    return create_app(test_settings)


@pytest.fixture
def flush_controller(test_app) -> FlushController:
    return test_app.state.flush_controller


@pytest_asyncio.fixture
async def client(test_app):
    """
    Create async test client for the agent.

    IMPORTANT: Always use `await` with client methods.
    """
    async with AsyncClient(
        transport=ASGITransport(app=test_app), base_url="http://test"
    ) as ac:
        yield ac
