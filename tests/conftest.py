"""Shared fixtures: a throwaway SQLite database per test and an authenticated API client."""

from __future__ import annotations

import asyncio
import os
import tempfile
from decimal import Decimal
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="fulfillment-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'app.db'}"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["ENVIRONMENT"] = "test"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from fulfillment.core.auth import create_access_token  # noqa: E402
from fulfillment.core.database import Base, build_engine, build_session_factory, get_session  # noqa: E402
from fulfillment.main import app  # noqa: E402
import fulfillment.models  # noqa: E402,F401
from fulfillment.services import driver_registry, order_service  # noqa: E402


def _database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'fulfillment.db'}"


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh schema per test; NullPool so no connection outlives its event loop."""
    eng = build_engine(_database_url(tmp_path), poolclass=NullPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest_asyncio.fixture
async def make_order(session):
    """Factory for pending orders with sensible defaults."""

    async def _make(**overrides):
        fields = dict(
            customer_id="cust-1",
            service_type="laundry",
            subtotal=Decimal("40.00"),
            delivery_fee=Decimal("5.00"),
            discount=Decimal("10.00"),
            pickup_address="12 Harbour Road",
            delivery_address="12 Harbour Road",
            actor_id="staff-1",
        )
        fields.update(overrides)
        return await order_service.create_order(session, **fields)

    return _make


@pytest_asyncio.fixture
async def make_driver(session):
    async def _make(name="Dara", **overrides):
        fields = dict(name=name, phone="+44 7700 900123", created_by="admin-1")
        fields.update(overrides)
        return await driver_registry.create_driver(session, **fields)

    return _make


# ── HTTP layer ────────────────────────────────


@pytest.fixture
def api_db(tmp_path):
    """Schema for the API client; built in its own loop since TestClient runs another."""
    eng = build_engine(_database_url(tmp_path), poolclass=NullPool)

    async def _create():
        async with eng.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    return eng


@pytest.fixture
def client(api_db):
    factory = build_session_factory(api_db)

    async def _override_session():
        async with factory() as s:
            yield s

    app.dependency_overrides[get_session] = _override_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def bearer(role: str = "staff", sub: str = "staff-1") -> dict[str, str]:
    token = create_access_token({"sub": sub, "role": role, "name": "Test Operator"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def operator_headers() -> dict[str, str]:
    return bearer()


@pytest.fixture
def headers_for():
    return bearer
