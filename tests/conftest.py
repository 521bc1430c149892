"""
Shared fixtures: an in-memory MongoDB (mongomock-motor) in place of the live
server, and small factories for catalog documents.
"""
import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app.config.database import Collections, db_config
from app.database.db_operations import db_ops


@pytest.fixture(autouse=True)
def mock_db():
    """Fresh database per test; transactions are off on the mock server"""
    client = AsyncMongoMockClient()
    previous = (db_config.client, db_config.database, db_config.MONGO_TRANSACTIONS)
    db_config.client = client
    db_config.database = client["hotel_pms_test"]
    db_config.MONGO_TRANSACTIONS = False
    yield db_config.database
    db_config.client, db_config.database, db_config.MONGO_TRANSACTIONS = previous


@pytest.fixture
async def api():
    from app.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


# ─── catalog factories ─────────────────────────────────────────────────────────

@pytest.fixture
def make_room_type():
    async def _make(name="Double", base_occupancy=2, max_occupancy=3, base_rate=90.0, currency="EUR"):
        return await db_ops.create(Collections.ROOM_TYPES, {
            "name": name,
            "base_occupancy": base_occupancy,
            "max_occupancy": max_occupancy,
            "base_rate": base_rate,
            "currency": currency,
        })
    return _make


@pytest.fixture
def make_room():
    async def _make(room_number, room_type, status="available"):
        return await db_ops.create(Collections.ROOMS, {
            "room_number": room_number,
            "room_type_id": str(room_type["_id"]),
            "status": status,
        })
    return _make


@pytest.fixture
def make_guest():
    async def _make(first_name="Ada", last_name="Lovelace", email="ada@example.com"):
        return await db_ops.create(Collections.GUESTS, {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
        })
    return _make


@pytest.fixture
def make_rate_plan():
    async def _make(base_price=80.0, currency="EUR", cancellation_policy_id=None, name="Standard"):
        return await db_ops.create(Collections.RATE_PLANS, {
            "name": name,
            "base_price": base_price,
            "currency": currency,
            "cancellation_policy_id": cancellation_policy_id,
        })
    return _make


@pytest.fixture
def make_article():
    async def _make(name="Breakfast", charge_scheme="per_person_per_day", unit_price=15.0, tax_rate=7.0,
                    is_active=True):
        return await db_ops.create(Collections.ARTICLES, {
            "name": name,
            "charge_scheme": charge_scheme,
            "unit_price": unit_price,
            "tax_rate": tax_rate,
            "is_active": is_active,
        })
    return _make
