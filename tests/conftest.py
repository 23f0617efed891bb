"""Shared fixtures.

Settings are read from the environment at import time, so the variables
are set before anything from ``src`` is imported.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("ENVIRONMENT", "local")

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import src.activities.models  # noqa: E402,F401
import src.events.models  # noqa: E402,F401
import src.users.models  # noqa: E402,F401
from src.activities.rate_limiter import IngestionRateLimiter  # noqa: E402
from src.core.database import Base  # noqa: E402
from src.core.locks import PairLockRegistry  # noqa: E402
from tests.factories import RecordingNotifier  # noqa: E402

ADMIN_HEADERS = {"X-API-Key": "test-admin-key"}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def locks():
    return PairLockRegistry()


@pytest.fixture
def rate_limiter():
    return IngestionRateLimiter(max_requests=5, window_seconds=60)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def client(session_maker, locks, rate_limiter, notifier):
    """HTTP client against the app, with runtime services swapped for test ones.

    The application lifespan is not run; every piece of state it would
    provide is overridden instead.
    """
    from src.dependencies import (
        get_bonus_notifier,
        get_ingest_rate_limiter,
        get_pair_locks,
        get_session,
    )
    from src.main import app

    async def override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_pair_locks] = lambda: locks
    app.dependency_overrides[get_ingest_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_bonus_notifier] = lambda: notifier

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
