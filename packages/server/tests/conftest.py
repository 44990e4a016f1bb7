"""
Shared fixtures for server tests.

Each test gets its own SQLite database file; the app's session, session
factory and push channel dependencies are overridden to point at it.
"""

import os
import tempfile

# Configure before app modules read settings
_db_dir = tempfile.mkdtemp(prefix="notifyhub-tests-")
os.environ.setdefault("NH_DATABASE_URL", f"sqlite+aiosqlite:///{_db_dir}/bootstrap.db")
os.environ.setdefault("NH_REDIS_URL", "")
os.environ.setdefault("NH_INIT_DB_ON_STARTUP", "false")
os.environ.setdefault("NH_ORPHAN_SWEEP_ENABLED", "false")

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

import app.models  # noqa: F401  populate metadata
from app.core.database import build_engine, build_session_factory, get_session, get_session_factory, init_db
from app.core.delivery import ConnectionManager, get_manager
from app.core.metrics import MetricsCollector, metrics
from app.main import app


@pytest.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'notifyhub.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_factory(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
def session_factory(session_maker):
    """Same contract as ``get_session_context``: commit on success, roll back on error."""

    @asynccontextmanager
    async def factory():
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    return factory


@pytest.fixture
def push():
    return ConnectionManager(max_connections=10, metrics=MetricsCollector())


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
async def client(session_maker, session_factory, push):
    async def override_session():
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_manager] = lambda: push

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_ws():
    """Factory for WebSocket doubles recording every frame sent."""

    def factory():
        ws = AsyncMock()
        ws.accept = AsyncMock()
        ws.send_text = AsyncMock()
        return ws

    return factory
