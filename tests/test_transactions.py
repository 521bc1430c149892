"""
Driver failures inside transactional writes surface as one error and leave
nothing behind.
"""
import pytest
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.config.database import Collections, db_config
from app.database.db_operations import db_ops
from app.services import invoice_service, reservation_service
from app.services.exceptions import ConflictError, InternalError


def fail_on_create(monkeypatch, collection: str, error: Exception):
    """Make inserts into `collection` raise `error`; other collections are untouched"""
    original = db_ops.create

    async def create(collection_name, document, session=None):
        if collection_name == collection:
            raise error
        return await original(collection_name, document, session=session)

    monkeypatch.setattr(db_ops, "create", create)


@pytest.fixture
async def stay(make_room_type, make_room, make_guest):
    room_type = await make_room_type()
    room = await make_room("5", room_type)
    guest = await make_guest()
    return {
        "guest_id": str(guest["_id"]),
        "check_in_date": "2024-06-01",
        "check_out_date": "2024-06-03",
        "adults": 2,
        "rooms": [str(room["_id"])],
        "status": "confirmed",
    }


class TestCreateReservation:
    async def test_duplicate_key_is_a_conflict(self, stay, monkeypatch):
        fail_on_create(monkeypatch, Collections.RESERVATIONS, DuplicateKeyError("E11000 duplicate key"))
        with pytest.raises(ConflictError):
            await reservation_service.create_reservation(stay)
        assert await db_ops.count(Collections.RESERVATIONS) == 0
        assert await db_config.get_collection(Collections.ROOM_LOCKS).count_documents({}) == 0

    async def test_driver_failure_is_internal(self, stay, monkeypatch):
        fail_on_create(monkeypatch, Collections.RESERVATIONS, PyMongoError("connection reset"))
        with pytest.raises(InternalError) as exc:
            await reservation_service.create_reservation(stay)
        assert exc.value.status_code == 500
        assert await db_ops.count(Collections.RESERVATIONS) == 0

    async def test_room_is_free_after_a_failed_attempt(self, stay, monkeypatch):
        fail_on_create(monkeypatch, Collections.RESERVATIONS, PyMongoError("connection reset"))
        with pytest.raises(InternalError):
            await reservation_service.create_reservation(stay)
        monkeypatch.undo()
        created = await reservation_service.create_reservation(stay)
        assert created["confirmation_number"]


class TestPayInvoice:
    @pytest.fixture
    async def invoiced(self, stay):
        created = await reservation_service.create_reservation(stay)
        await invoice_service.create_invoice(created["id"], {})
        return created["id"]

    async def test_duplicate_key_is_a_conflict(self, invoiced, monkeypatch):
        fail_on_create(monkeypatch, Collections.PAYMENTS, DuplicateKeyError("E11000 duplicate key"))
        with pytest.raises(ConflictError):
            await invoice_service.pay_invoice(invoiced, {})

    async def test_driver_failure_is_internal(self, invoiced, monkeypatch):
        fail_on_create(monkeypatch, Collections.PAYMENTS, PyMongoError("not primary"))
        with pytest.raises(InternalError):
            await invoice_service.pay_invoice(invoiced, {})
        invoice = await invoice_service.latest_invoice(invoiced)
        assert invoice["status"] == "issued"
        reservation = await reservation_service.get_reservation_document(invoiced)
        assert reservation["status"] == "confirmed"
        assert await db_ops.count(Collections.PAYMENTS) == 0
