"""
HTTP-level tests through the FastAPI app
"""
import pytest


@pytest.fixture
async def catalog(api):
    room_type = (await api.post("/api/room-types/", json={
        "name": "Double", "base_occupancy": 2, "max_occupancy": 3, "base_rate": 90,
    })).json()
    room = (await api.post("/api/rooms/", json={"room_number": "5", "room_type_id": room_type["_id"]})).json()
    guest = (await api.post("/api/guests/", json={"first_name": "Ada", "last_name": "Lovelace"})).json()
    return {"room_type": room_type, "room": room, "guest": guest}


def _booking(catalog, **extra):
    body = {
        "guest_id": catalog["guest"]["_id"],
        "check_in_date": "2024-06-01",
        "check_out_date": "2024-06-05",
        "adults": 2,
        "rooms": [catalog["room"]["_id"]],
        "status": "confirmed",
    }
    body.update(extra)
    return body


async def test_health(api):
    response = await api.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestCatalogRoutes:
    async def test_occupancy_bounds(self, api):
        response = await api.post("/api/room-types/", json={"name": "Bad", "base_occupancy": 3, "max_occupancy": 2})
        assert response.status_code == 422

    async def test_room_numbers_are_unique(self, api, catalog):
        response = await api.post("/api/rooms/", json={
            "room_number": "5", "room_type_id": catalog["room_type"]["_id"],
        })
        assert response.status_code == 409

    async def test_housekeeping_status(self, api, catalog):
        room_id = catalog["room"]["_id"]
        response = await api.patch(f"/api/rooms/{room_id}/status", json={"status": "out_of_order", "notes": "leak"})
        assert response.status_code == 200
        assert response.json()["status"] == "out_of_order"
        logs = (await api.get("/api/housekeeping/logs", params={"room_id": room_id})).json()
        assert logs[0]["notes"] == "leak"

    async def test_rule_weekdays_are_normalized(self, api):
        plan = (await api.post("/api/rate-plans/", json={"name": "BAR", "base_price": 100, "currency": "eur"})).json()
        assert plan["currency"] == "EUR"
        calendar = (await api.post(f"/api/rate-plans/{plan['_id']}/calendars", json={"name": "2024"})).json()
        rule = (await api.post(
            f"/api/rate-plans/{plan['_id']}/calendars/{calendar['_id']}/rules",
            json={"start_date": "2024-01-01", "end_date": "2024-01-31", "weekdays": [0, 6, 6, 9], "price": 150},
        )).json()
        assert rule["weekdays"] == [6, 0]

        resolved = await api.get(
            f"/api/rate-plans/{plan['_id']}/resolve", params={"start": "2024-01-06", "end": "2024-01-08"}
        )
        assert resolved.status_code == 200
        assert [d["price"] for d in resolved.json()["days"]] == [150.0, 150.0, 100.0]

    async def test_rule_dates_must_be_ordered(self, api):
        plan = (await api.post("/api/rate-plans/", json={"name": "BAR", "base_price": 100})).json()
        calendar = (await api.post(f"/api/rate-plans/{plan['_id']}/calendars", json={"name": "2024"})).json()
        response = await api.post(
            f"/api/rate-plans/{plan['_id']}/calendars/{calendar['_id']}/rules",
            json={"start_date": "2024-02-01", "end_date": "2024-01-01"},
        )
        assert response.status_code == 422

    async def test_article_soft_delete(self, api):
        article = (await api.post("/api/articles/", json={"name": "Parking", "unit_price": 12})).json()
        assert (await api.delete(f"/api/articles/{article['_id']}")).status_code == 204
        stored = (await api.get(f"/api/articles/{article['_id']}")).json()
        assert stored["is_active"] is False


class TestReservationRoutes:
    async def test_create_and_read(self, api, catalog):
        response = await api.post("/api/reservations/", json=_booking(catalog))
        assert response.status_code == 201
        created = response.json()
        assert created["confirmation_number"] == "RES-001000"

        view = (await api.get(f"/api/reservations/{created['id']}")).json()
        assert view["rooms"][0]["room_number"] == "5"
        assert view["rooms"][0]["nightly_rate"] == 90.0
        assert view["status_history"][0]["status"] == "confirmed"

    async def test_double_booking_is_a_conflict(self, api, catalog):
        await api.post("/api/reservations/", json=_booking(catalog))
        response = await api.post(
            "/api/reservations/", json=_booking(catalog, check_in_date="2024-06-04", check_out_date="2024-06-06")
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Room 5 is not available for the selected dates."

    async def test_capacity_is_a_conflict(self, api, catalog):
        response = await api.post("/api/reservations/", json=_booking(catalog, adults=4))
        assert response.status_code == 409
        assert "4 guests requested, 3 available" in response.json()["detail"]

    async def test_malformed_payload(self, api, catalog):
        response = await api.post(
            "/api/reservations/", json=_booking(catalog, check_out_date="2024-05-01")
        )
        assert response.status_code == 422

    async def test_unknown_reservation(self, api):
        response = await api.get("/api/reservations/65a000000000000000000000")
        assert response.status_code == 404

    async def test_check_in_and_out(self, api, catalog):
        created = (await api.post("/api/reservations/", json=_booking(catalog))).json()
        response = await api.post(f"/api/reservations/{created['id']}/check-in", json={"recorded_by": "desk"})
        assert response.json() == {"status": "checked_in"}
        room = (await api.get(f"/api/rooms/{catalog['room']['_id']}")).json()
        assert room["status"] == "occupied"

        await api.post(f"/api/reservations/{created['id']}/check-out")
        room = (await api.get(f"/api/rooms/{catalog['room']['_id']}")).json()
        assert room["status"] == "in_cleaning"

    async def test_status_must_be_known(self, api, catalog):
        created = (await api.post("/api/reservations/", json=_booking(catalog))).json()
        response = await api.post(f"/api/reservations/{created['id']}/status", json={"status": "archived"})
        assert response.status_code == 422

    async def test_invoice_and_payment(self, api, catalog):
        created = (await api.post("/api/reservations/", json=_booking(catalog))).json()
        invoice = await api.post(f"/api/reservations/{created['id']}/invoices", json={})
        assert invoice.status_code == 201
        # 4 nights at 90 with 7% tax
        assert invoice.json()["total_amount"] == 385.2

        paid = (await api.post(f"/api/reservations/{created['id']}/pay", json={"method": "card"})).json()
        assert paid["invoice"]["status"] == "paid"
        assert paid["payment"]["amount"] == 385.2

        listed = (await api.get("/api/invoices/", params={"reservation_id": created["id"]})).json()
        assert [i["status"] for i in listed] == ["paid"]
        payments = (await api.get("/api/payments/")).json()
        assert payments[0]["method"] == "card"

    async def test_invoice_lines_display_to_the_cent(self, api, catalog):
        created = (await api.post("/api/reservations/", json=_booking(catalog))).json()
        items = [{"description": f"Water {n}", "unit_price": 0.10, "tax_rate": 7} for n in range(3)]
        invoice = (await api.post(f"/api/reservations/{created['id']}/invoices", json={"items": items})).json()
        assert [i["total_amount"] for i in invoice["items"]] == [0.11, 0.11, 0.11]
        assert invoice["total_amount"] == 0.32

        stored = (await api.get(f"/api/invoices/{invoice['_id']}")).json()
        assert stored["invoice_number"] == invoice["invoice_number"]
        assert stored["reservation_id"] == created["id"]


class TestGuestPortal:
    async def test_lookup_hides_history(self, api, catalog):
        created = (await api.post("/api/reservations/", json=_booking(catalog))).json()
        response = await api.get(f"/api/guest-portal/reservations/{created['confirmation_number']}")
        assert response.status_code == 200
        assert response.json()["last_name"] == "Lovelace"
        assert "status_history" not in response.json()

    async def test_self_check_in(self, api, catalog):
        created = (await api.post("/api/reservations/", json=_booking(catalog))).json()
        number = created["confirmation_number"]
        response = await api.post(f"/api/guest-portal/reservations/{number}/check-in")
        assert response.json() == {"status": "checked_in"}
        view = (await api.get(f"/api/reservations/{created['id']}")).json()
        assert view["status_history"][0]["notes"] == "Guest self check-in"

    async def test_upsell(self, api, catalog):
        created = (await api.post("/api/reservations/", json=_booking(catalog))).json()
        number = created["confirmation_number"]
        response = await api.post(f"/api/guest-portal/reservations/{number}/upsell", json={"service_type": "spa"})
        assert response.status_code == 201
        assert response.json()["status"] == "open"

    async def test_unknown_confirmation(self, api):
        response = await api.get("/api/guest-portal/reservations/NOPE")
        assert response.status_code == 404


class TestReportRoutes:
    async def test_occupancy(self, api, catalog):
        await api.post("/api/reservations/", json=_booking(catalog))
        report = (await api.get("/api/reports/occupancy", params={"start": "2024-06-01", "end": "2024-06-02"})).json()
        assert [d["occupancy_rate"] for d in report] == [100.0, 100.0]

    async def test_bad_dates(self, api):
        response = await api.get("/api/reports/revenue", params={"start": "x"})
        assert response.status_code == 422
