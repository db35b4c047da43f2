import os

# Set env vars BEFORE any app imports trigger Settings()
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("PIN", "4321")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock, patch
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from inspection_records.main import app
from inspection_records.database import Base, get_db
import inspection_records.models  # noqa: F401  registers tables

TEST_DB = "sqlite+aiosqlite:///:memory:"
TEST_PIN = "4321"


@pytest_asyncio.fixture
async def db_engine():
    # fresh in-memory database per test; StaticPool keeps one connection alive
    engine = create_async_engine(TEST_DB, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(db_engine):
    Session = async_sessionmaker(db_engine, expire_on_commit=False)
    async with Session() as session:
        yield session


class AsyncIterEmpty:
    """Async iterator that yields nothing (for scan_iter mock)."""
    def __aiter__(self):
        return self

    async def __anext__(self):
        raise StopAsyncIteration


@pytest.fixture(autouse=True)
def fake_redis():
    """Every test runs against a Redis that never has anything cached."""
    mock_r = AsyncMock()
    mock_r.ping = AsyncMock(return_value=True)
    mock_r.get = AsyncMock(return_value=None)
    mock_r.setex = AsyncMock(return_value=True)
    mock_r.delete = AsyncMock(return_value=1)
    # scan_iter() is a sync call that returns an async iterator
    mock_r.scan_iter = MagicMock(side_effect=lambda **kw: AsyncIterEmpty())

    with patch("inspection_records.cache.get_redis", return_value=mock_r):
        yield mock_r


@pytest_asyncio.fixture
async def client(db):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
