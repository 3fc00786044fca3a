"""Pytest fixtures for all tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from database.store import MemoryUrlStore
from main import app as fastapi_app
from main import get_shortener
from services.shortener import UrlShortener
from utils.snowflake import DEFAULT_EPOCH, SnowflakeIDGenerator


class FakeClock:
    """Millisecond clock that only moves when told to.

    Values passed to schedule() are returned by successive reads before the
    clock settles on the last one.
    """

    def __init__(self, now: int = DEFAULT_EPOCH + 1_000):
        self.now = now
        self._pending = []

    def schedule(self, *values):
        self._pending.extend(values)

    def __call__(self) -> int:
        if self._pending:
            self.now = self._pending.pop(0)
        return self.now


@pytest.fixture
def clock():
    """Create a frozen test clock."""
    return FakeClock()


@pytest.fixture
def generator():
    """Create a generator on the system clock."""
    return SnowflakeIDGenerator(node_id=0)


@pytest.fixture
def store():
    """Create an empty in-memory store."""
    return MemoryUrlStore()


@pytest.fixture
def shortener(store, generator):
    """Create a shortener over the in-memory store."""
    return UrlShortener(store, generator, base_url="https://miniurl.test/")


@pytest.fixture
async def client(shortener):
    """Create async test client bound to the test shortener."""
    fastapi_app.dependency_overrides[get_shortener] = lambda: shortener
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()
