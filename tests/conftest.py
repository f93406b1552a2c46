# tests/conftest.py
import os
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ============================================================
# Settings are read at import time: set them before importing the app
# ============================================================
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_ACCESS_SECRET_KEY"] = "test-secret"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from main import app  # noqa: E402
from stockledger.core.db import Base, get_db, enable_sqlite_foreign_keys  # noqa: E402
from stockledger.core.security import create_access_token  # noqa: E402
from stockledger.models import InventoryLocation, ImportOrigin  # noqa: E402

TEST_ACTOR = "user-42"


def make_engine(url: str = "sqlite+aiosqlite:///:memory:", **kwargs) -> AsyncEngine:
    if url.endswith(":memory:"):
        # one shared connection, otherwise every checkout sees an empty database
        kwargs.setdefault("poolclass", StaticPool)
    engine = create_async_engine(
        url,
        connect_args={"check_same_thread": False},
        **kwargs,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)
    return engine


# =========================================
# ENGINE / SESSION (fresh database per test)
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(async_engine: AsyncEngine):
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


# =========================================
# REFERENCE DATA
# =========================================
@pytest_asyncio.fixture(scope="function")
async def seed(session_maker) -> dict[str, int]:
    """Three active locations, one inactive location and two import origins, as plain ids."""
    async with session_maker() as sess:
        l1 = InventoryLocation(code="L1", name="Main Warehouse")
        l2 = InventoryLocation(code="L2", name="Showroom")
        l3 = InventoryLocation(code="L3", name="Back Store")
        closed = InventoryLocation(code="LX", name="Closed Depot", is_active=False)
        jp = ImportOrigin(name="Japan", country="JP")
        de = ImportOrigin(name="Germany", country="DE")
        sess.add_all([l1, l2, l3, closed, jp, de])
        await sess.commit()

        return {
            "L1": l1.id,
            "L2": l2.id,
            "L3": l3.id,
            "LX": closed.id,
            "JP": jp.id,
            "DE": de.id,
        }


# =========================================
# HTTP CLIENT
# =========================================
@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(TEST_ACTOR)}"}


@pytest_asyncio.fixture(scope="function")
async def client(session_maker, auth_headers) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _override_get_db():
        async with session_maker() as sess:
            yield sess

    app.dependency_overrides[get_db] = _override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        headers=auth_headers,
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
