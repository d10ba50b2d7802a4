"""
Pytest fixtures for the stocktake backend tests.

Provides a fresh in-memory database per test, a session for service-level
tests, an HTTP client wired to the same database, and seed data.
"""
import os

# Must be set before the app (and its settings) are imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["CRON_API_KEY"] = "test-cron-key"
os.environ["ACCESS_SECRET"] = "test-access-secret-0123456789abcdef"
os.environ["REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef"

import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from db.database import Base, Item, StockRecord, Stocktaking, StorageLocation, Unit, get_async_session
from main import app
from core.auth import create_access_token
from core.security import Role
from services.users import create_user


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    async def _override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_user(db_session):
    return await create_user(db_session, "admin", "password123", role=Role.ADMIN)


@pytest.fixture
async def regular_user(db_session):
    return await create_user(db_session, "alice", "alice-pass", display_name="Alice")


def bearer(user) -> dict:
    """Authorization header for ``user``; avoids sharing the cookie jar between roles."""
    token = create_access_token(user.id, user.name, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return bearer


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


@pytest.fixture
def user_headers(regular_user):
    return bearer(regular_user)


@pytest.fixture
async def masters(db_session):
    """Units, locations and catalog items shared by record tests."""
    pcs = Unit(name="pcs")
    bottles = Unit(name="bottles")
    warehouse = StorageLocation(name="Warehouse A")
    office = StorageLocation(name="Office 2F")
    db_session.add_all([pcs, bottles, warehouse, office])
    await db_session.flush()

    water = Item(name="Drinking water 2L", unit_id=bottles.id)
    blanket = Item(name="Thermal blanket", unit_id=pcs.id)
    loose = Item(name="Loose batteries", unit_id=None)
    db_session.add_all([water, blanket, loose])
    await db_session.commit()

    return {
        "pcs": pcs,
        "bottles": bottles,
        "warehouse": warehouse,
        "office": office,
        "water": water,
        "blanket": blanket,
        "loose": loose,
    }


@pytest.fixture
async def first_stocktaking(db_session):
    stocktaking = Stocktaking(name="Q1", date=datetime.date(2024, 3, 1), active=True)
    db_session.add(stocktaking)
    await db_session.commit()
    return stocktaking


@pytest.fixture
async def stocked(db_session, masters, first_stocktaking):
    """First stocktaking holding three records."""
    m = masters
    records = [
        StockRecord(
            item_id=m["water"].id,
            storage_location_id=m["warehouse"].id,
            unit_id=m["bottles"].id,
            quantity=120,
            expiry_date=datetime.date(2025, 1, 31),
            stocktaking_id=first_stocktaking.id,
        ),
        StockRecord(
            item_id=m["water"].id,
            storage_location_id=m["office"].id,
            unit_id=m["bottles"].id,
            quantity=24,
            expiry_date=datetime.date(2024, 5, 1),
            stocktaking_id=first_stocktaking.id,
        ),
        StockRecord(
            item_id=m["blanket"].id,
            storage_location_id=m["warehouse"].id,
            unit_id=m["pcs"].id,
            quantity=60,
            expiry_date=None,
            stocktaking_id=first_stocktaking.id,
        ),
    ]
    db_session.add_all(records)
    await db_session.commit()
    return first_stocktaking, records
