import pytest

from app.config.database import Collections, db_config
from app.database.db_operations import db_ops
from app.services import cancellation, invoice_service, reservation_service
from app.services.exceptions import ConflictError, ValidationError


@pytest.fixture
async def booking(make_room_type, make_room, make_guest, make_article):
    """Two rooms for three nights at 80 per night with breakfast for two"""
    room_type = await make_room_type("Double", base_occupancy=2, max_occupancy=2)
    rooms = [await make_room("101", room_type), await make_room("102", room_type)]
    guest = await make_guest()
    breakfast = await make_article()
    result = await reservation_service.create_reservation({
        "guest_id": str(guest["_id"]),
        "check_in_date": "2024-06-01",
        "check_out_date": "2024-06-04",
        "adults": 2,
        "rooms": [{"room_id": str(r["_id"]), "nightly_rate": 80.0} for r in rooms],
        "articles": [{"article_id": str(breakfast["_id"])}],
        "status": "confirmed",
    })
    return {"id": result["id"], "rooms": rooms}


class TestCreateInvoice:
    async def test_rooms_and_articles(self, booking):
        invoice = await invoice_service.create_invoice(booking["id"], {})
        assert invoice["invoice_number"] == "INV-000001"
        assert invoice["type"] == "invoice"
        assert invoice["status"] == "issued"
        assert len(invoice["items"]) == 3
        # 480 room nights at 7% plus 90 breakfast at 7%
        assert invoice["subtotal_amount"] == 570.0
        assert invoice["tax_amount"] == 39.9
        assert invoice["total_amount"] == 609.9

    async def test_rooms_only(self, booking):
        invoice = await invoice_service.create_invoice(booking["id"], {"include_articles": False})
        assert invoice["total_amount"] == 513.6

    async def test_default_dates(self, booking):
        invoice = await invoice_service.create_invoice(booking["id"], {"issue_date": "2024-06-04"})
        assert invoice["issue_date"] == "2024-06-04"
        assert invoice["due_date"] == "2024-06-18"

    async def test_explicit_items_win(self, booking):
        invoice = await invoice_service.create_invoice(booking["id"], {
            "items": [{"description": "Flat rate", "unit_price": 100.0, "tax_rate": 19.0}],
        })
        assert len(invoice["items"]) == 1
        assert invoice["items"][0]["quantity"] == 1.0
        assert invoice["total_amount"] == 119.0

    async def test_item_without_description(self, booking):
        with pytest.raises(ValidationError):
            await invoice_service.create_invoice(booking["id"], {"items": [{"unit_price": 5}]})

    async def test_supplied_number_must_be_unique(self, booking):
        await invoice_service.create_invoice(booking["id"], {"invoice_number": "2024-17"})
        with pytest.raises(ConflictError):
            await invoice_service.create_invoice(booking["id"], {"invoice_number": "2024-17"})

    async def test_number_clash_past_the_lookup_is_a_conflict(self, booking, monkeypatch):
        await db_config.ensure_indexes()
        await invoice_service.create_invoice(booking["id"], {"invoice_number": "2024-17"})

        async def nothing_found(*args, **kwargs):
            return None

        # a concurrent request that checked before the first insert committed
        monkeypatch.setattr(db_ops, "get_one", nothing_found)
        with pytest.raises(ConflictError):
            await invoice_service.create_invoice(booking["id"], {"invoice_number": "2024-17"})
        monkeypatch.undo()
        assert await db_ops.count(Collections.INVOICES, {"invoice_number": "2024-17"}) == 1

    async def test_unique_numbers_allow_many_corrections(self, booking):
        await db_config.ensure_indexes()
        parent = await invoice_service.create_invoice(booking["id"], {})
        for _ in range(2):
            await invoice_service.create_invoice(booking["id"], {
                "type": "correction", "parent_invoice_id": parent["_id"],
            })
        assert await db_ops.count(Collections.INVOICES) == 3

    async def test_invoice_is_a_snapshot(self, booking):
        invoice = await invoice_service.create_invoice(booking["id"], {"include_articles": False})
        await reservation_service.update_reservation(booking["id"], {"check_out_date": "2024-06-06"})
        stored = await invoice_service.get_invoice(invoice["_id"])
        assert stored["total_amount"] == 513.6
        assert [i["quantity"] for i in stored["items"]] == [3.0, 3.0]


class TestCorrectionInvoice:
    async def test_reverses_parent(self, booking):
        parent = await invoice_service.create_invoice(booking["id"], {"include_articles": False})
        correction = await invoice_service.create_invoice(booking["id"], {
            "type": "correction", "parent_invoice_id": parent["_id"],
        })
        assert correction["correction_number"] == "COR-000001"
        assert correction["invoice_number"] is None
        assert correction["parent_invoice_id"] == parent["_id"]
        assert [i["quantity"] for i in correction["items"]] == [-3.0, -3.0]
        assert [i["unit_price"] for i in correction["items"]] == [80.0, 80.0]
        assert correction["total_amount"] == -513.6

    async def test_requires_parent(self, booking):
        with pytest.raises(ValidationError):
            await invoice_service.create_invoice(booking["id"], {"type": "correction"})


class TestPayInvoice:
    async def test_pays_latest_invoice(self, booking):
        invoice = await invoice_service.create_invoice(booking["id"], {})
        result = await invoice_service.pay_invoice(booking["id"], {"method": "card"})

        assert result["invoice"]["_id"] == invoice["_id"]
        assert result["invoice"]["status"] == "paid"
        assert result["payment"]["amount"] == 609.9
        assert result["payment"]["method"] == "card"
        reservation = await reservation_service.get_reservation_document(booking["id"])
        assert reservation["status"] == "paid"
        room = await db_ops.get_by_id(Collections.ROOMS, str(booking["rooms"][0]["_id"]))
        assert room["status"] == "occupied"

    async def test_already_paid_is_a_no_op(self, booking):
        await invoice_service.create_invoice(booking["id"], {})
        await invoice_service.pay_invoice(booking["id"], {})
        again = await invoice_service.pay_invoice(booking["id"], {})
        assert again["payment"] is None
        assert again["message"] == "Invoice already paid."
        assert await db_ops.count(Collections.PAYMENTS) == 1

    async def test_non_positive_amount(self, booking):
        await invoice_service.create_invoice(booking["id"], {})
        with pytest.raises(ValidationError):
            await invoice_service.pay_invoice(booking["id"], {"amount": 0})
        assert await db_ops.count(Collections.PAYMENTS) == 0

    async def test_no_invoice(self, booking):
        with pytest.raises(ValidationError):
            await invoice_service.pay_invoice(booking["id"], {})

    async def test_payments_are_listed(self, booking):
        invoice = await invoice_service.create_invoice(booking["id"], {})
        await invoice_service.pay_invoice(booking["id"], {"amount": 100})
        payments = await invoice_service.list_payments(invoice["_id"])
        assert [p["amount"] for p in payments] == [100.0]


class TestCancellationQuote:
    async def _with_policy(self, make_rate_plan, booking, **policy):
        created = await db_ops.create(Collections.CANCELLATION_POLICIES, {"name": "Policy", **policy})
        plan = await make_rate_plan(cancellation_policy_id=str(created["_id"]))
        await reservation_service.update_reservation(booking["id"], {"rate_plan_id": str(plan["_id"])})
        return created

    def test_penalty_types(self):
        policy = {"free_until_days": 7, "penalty_type": "percent", "penalty_value": 50}
        assert cancellation.calculate_cancellation_penalty(policy, 10, 400, 4, 100) == 0
        assert cancellation.calculate_cancellation_penalty(policy, 3, 400, 4, 100) == 200
        fixed = {**policy, "penalty_type": "fixed", "penalty_value": 75}
        assert cancellation.calculate_cancellation_penalty(fixed, 3, 400, 4, 100) == 75
        nights = {**policy, "penalty_type": "nights", "penalty_value": 1}
        assert cancellation.calculate_cancellation_penalty(nights, 3, 400, 4, 100) == 100

    async def test_free_with_enough_notice(self, booking, make_rate_plan):
        await self._with_policy(make_rate_plan, booking, free_until_days=7, penalty_type="fixed", penalty_value=50)
        quote = await cancellation.quote_cancellation(booking["id"], "2024-05-01")
        assert quote["days_before_arrival"] == 31
        assert quote["free_cancellation"] is True
        assert quote["penalty_amount"] == 0

    async def test_late_cancellation_charges_first_night(self, booking, make_rate_plan):
        await self._with_policy(make_rate_plan, booking, free_until_days=7, penalty_type="nights", penalty_value=1)
        quote = await cancellation.quote_cancellation(booking["id"], "2024-05-30")
        assert quote["free_cancellation"] is False
        # one night for each of the two rooms at 80
        assert quote["penalty_amount"] == 160.0
        assert quote["currency"] == "EUR"

    async def test_without_policy_is_free(self, booking):
        quote = await cancellation.quote_cancellation(booking["id"], "2024-05-31")
        assert quote["cancellation_policy_id"] is None
        assert quote["free_cancellation"] is True
