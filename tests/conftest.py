"""
Pytest configuration for the Village Land Registry.

Provides fixtures for:
- A fresh SQLite database per test (file-backed, so several sessions can share it)
- An initialized crypto engine
- An httpx client over the ASGI app with get_db pointed at the test database
- A few recorded owners
"""

import os
import tempfile

# Set up test environment BEFORE importing anything that uses settings
_TEST_DIR = tempfile.mkdtemp(prefix="landregistry-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/registry.db")
os.environ.setdefault("LOG_FILE", os.path.join(_TEST_DIR, "landregistry.log"))

import pytest
from cryptography.fernet import Fernet
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import settings
from core.crypto import crypto_engine
from db.session import Base, get_db
from db import models  # noqa — registers tables on Base
from modules.owners import create_owner


@pytest.fixture(autouse=True)
def crypto():
    """Fresh encryption key for every test."""
    crypto_engine.initialize(Fernet.generate_key().decode())
    return crypto_engine


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """No real backoff sleeps in tests."""
    monkeypatch.setattr(settings, "TRANSFER_RETRY_MIN_SECONDS", 0.0)
    monkeypatch.setattr(settings, "TRANSFER_RETRY_MAX_SECONDS", 0.0)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def alice(session_factory):
    return await _owner(session_factory, "Alice Mensah", national_id="VIL-0001", contact_number="0200000001")


@pytest.fixture
async def bob(session_factory):
    return await _owner(session_factory, "Bob Owusu", address="House 4, River Road")


@pytest.fixture
async def carol(session_factory):
    return await _owner(session_factory, "Carol Asante")


async def _owner(session_factory, full_name, **fields):
    # Own session: the returned owner stays readable after the test's
    # session rolls back a rejected write
    async with session_factory() as session:
        return await create_owner(session, full_name, **fields)
