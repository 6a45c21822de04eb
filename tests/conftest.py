"""
Shared test fixtures.

Provides:
- an in-memory spatial store and a proximity service with a stepping clock
- an async HTTP client bound to the FastAPI app (no database needed)
- a fake asyncpg pool for exercising the PostgreSQL store
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from services.proximity_service import ProximityPolicy, ProximityService  # noqa: E402
from stores.memory_store import MemorySpatialStore  # noqa: E402

START = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class SteppingClock:
    """Returns START, START+1s, START+2s, ... on successive calls."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


class FakePool:
    """Stands in for an asyncpg pool: acquire() hands out one mock connection."""

    def __init__(self, conn):
        self.conn = conn
        self.close = AsyncMock()

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
async def store():
    memory_store = MemorySpatialStore(cell_degrees=0.01)
    await memory_store.open()
    yield memory_store
    await memory_store.close()


@pytest.fixture
def service(store, clock):
    return ProximityService(store, ProximityPolicy(), clock=clock)


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
def app(store, service):
    from app import app as _app

    _app.state.store = store
    _app.state.proximity_service = service
    return _app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# asyncpg doubles
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_conn():
    conn = AsyncMock()
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def fake_pool(mock_conn):
    return FakePool(mock_conn)
