"""Pytest configuration and fixtures."""

import logging

import pytest
import pytest_asyncio

from formvault.database import Database
from tests.helpers import FakeClock, FakeStorage


# Configure pytest-asyncio to auto-detect async tests
pytest_plugins = ("pytest_asyncio",)


def pytest_configure(config: pytest.Config) -> None:
    """Keep HTTP client and AWS SDK logs out of test output."""
    for name in ["httpx", "botocore", "boto3"]:
        logging.getLogger(name).setLevel(logging.WARNING)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def test_db():
    """Create a fresh in-memory database for each test."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.init_db()
    yield db
    await db.close()
