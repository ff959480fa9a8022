"""
Pytest configuration and shared fixtures for hotpath agent tests.
"""

import os

# Set required environment variables BEFORE importing agent modules
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("TEST_MODE", "false")

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from hotpath_agent.auth.grant import AccessTokenCache
from hotpath_agent.msclient.client import SubmissionClient
from hotpath_agent.samples.aggregator import SampleAggregator
from hotpath_agent.samples.flush import FlushController


class FakeClock:
    """Injectable clock; tests move time forward explicitly."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def aggregator():
    return SampleAggregator()


@pytest.fixture
def mock_token_cache():
    """Token cache that always hands out the same token."""
    cache = MagicMock(spec=AccessTokenCache)
    cache.auth_enabled = True
    cache.get_access_token = AsyncMock(return_value="test-access-token")
    return cache


@pytest.fixture
def mock_submission_client():
    """Submission client whose sends always succeed."""
    client = MagicMock(spec=SubmissionClient)
    client.endpoint = "https://api.example.test/query"
    client.submit_sample = AsyncMock(return_value=None)
    return client


@pytest.fixture
def controller(aggregator, mock_token_cache, mock_submission_client):
    """Flush controller that flushes after every second batch."""
    return FlushController(
        aggregator=aggregator,
        token_cache=mock_token_cache,
        client=mock_submission_client,
        cache_length=1,
    )


def make_token_response(access_token="token-1", expires_in=10, status_code=200):
    """Build a mocked token endpoint response."""
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.text = ""
    mock_response.json.return_value = {
        "access_token": access_token,
        "token_type": "Bearer",
        "scope": "write:samples",
        "expires_in": expires_in,
    }
    return mock_response


def hotpath_totals(samples):
    """Flatten exported samples into {(project, environment, fn): count}."""
    return {
        (sample.projectName, sample.environment, hotpath.fnName): hotpath.nCalls
        for sample in samples
        for hotpath in sample.hotpaths
    }
