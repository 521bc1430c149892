"""
Pure pricing components: capacity admission, article quantities and invoice
totals.
"""
import pytest

from app.services.article_pricing import billable_quantity, price_line, recalculate_articles
from app.services.capacity import describe_selection, guest_count, request_units, room_units, validate_capacity
from app.services.exceptions import CapacityConfigurationError, CapacityError, ValidationError
from app.services.invoice_service import (
    build_article_items, build_room_items, calculate_invoice_totals, normalize_item, reverse_items,
)

DOUBLE = {"_id": "t1", "name": "Double", "base_occupancy": 2, "max_occupancy": 3}
SINGLE = {"_id": "t2", "name": "Single", "base_occupancy": 1, "max_occupancy": None}


class TestCapacity:
    def test_guest_count_clamps_negative(self):
        assert guest_count(2, -1) == 2
        assert guest_count(None, "1") == 1

    def test_three_adults_fit_a_double(self):
        units = room_units([{"room_number": "5", "room_type_id": "t1"}], {"t1": DOUBLE})
        assert validate_capacity(3, units, describe_selection(units)) == 3

    def test_shortfall_names_numbers(self):
        units = room_units([{"room_number": "5", "room_type_id": "t1"}], {"t1": DOUBLE})
        with pytest.raises(CapacityError) as exc:
            validate_capacity(4, units, describe_selection(units))
        assert exc.value.required == 4
        assert exc.value.available == 3
        assert exc.value.status_code == 409
        assert "Room 5" in exc.value.message

    def test_requests_multiply_by_quantity(self):
        units = request_units([{"room_type_id": "t2", "quantity": 3}], {"t2": SINGLE})
        assert validate_capacity(3, units, describe_selection(units)) == 3
        assert describe_selection(units) == "3 x Room type Single"

    def test_zero_capacity_is_a_configuration_error(self):
        broken = {"name": "Broken", "base_occupancy": 0, "max_occupancy": 0}
        units = request_units([{"room_type_id": "x", "quantity": 1}], {"x": broken})
        with pytest.raises(CapacityConfigurationError):
            validate_capacity(1, units, "x")

    def test_at_least_one_guest(self):
        with pytest.raises(ValidationError):
            validate_capacity(0, [("Room 1", 2, 1)], "Room 1")


class TestArticlePricing:
    @pytest.mark.parametrize("scheme, expected", [
        ("per_person_per_day", 6),
        ("per_room_per_day", 6),
        ("per_day", 3),
        ("per_person", 2),
        ("per_stay", 1),
        ("something_else", 1),
    ])
    def test_quantity_by_scheme(self, scheme, expected):
        assert billable_quantity(scheme, nights=3, guests=2, rooms=2) == expected

    def test_multiplier_scales(self):
        assert billable_quantity("per_day", 3, 2, 1, multiplier=2) == 6

    def test_breakfast_line(self):
        row = {"charge_scheme": "per_person_per_day", "unit_price": 15, "tax_rate": 7, "multiplier": 1}
        priced = price_line(row, nights=3, guests=2, rooms=1)
        assert priced["quantity"] == 6
        assert priced["total_amount"] == 90.00
        assert priced["tax_amount"] == 6.30

    def test_zero_multiplier_gives_zero_quantity(self):
        row = {"charge_scheme": "per_stay", "unit_price": 10, "tax_rate": 19, "multiplier": 0}
        assert price_line(row, 3, 2, 1)["quantity"] == 0

    def test_recalculate_follows_guest_count(self):
        rows = [{"charge_scheme": "per_person_per_day", "unit_price": 15, "tax_rate": 7, "multiplier": 1}]
        before = recalculate_articles(rows, nights=3, guests=2, rooms=1)
        after = recalculate_articles(before, nights=3, guests=3, rooms=1)
        assert before[0]["quantity"] == 6
        assert after[0]["quantity"] == 9
        assert after[0]["total_amount"] == 135.00


class TestInvoiceItems:
    def _reservation(self, **extra):
        reservation = {
            "check_in_date": "2024-06-01",
            "check_out_date": "2024-06-04",
            "rooms": [
                {"room_id": "r1", "room_number": "101", "room_type_id": "t1", "nightly_rate": 80.0},
                {"room_id": "r2", "room_number": "102", "room_type_id": "t1", "nightly_rate": 80.0},
            ],
            "room_requests": [],
            "articles": [],
        }
        reservation.update(extra)
        return reservation

    def test_two_rooms_three_nights(self):
        items = build_room_items(self._reservation(), {"t1": DOUBLE}, None)
        totals = calculate_invoice_totals(items)
        assert [i["quantity"] for i in items] == [3, 3]
        assert all(i["tax_rate"] == 7.0 for i in items)
        assert items[0]["description"].startswith("Room 101 (Double)")
        assert totals == {"subtotal": 480.00, "tax": 33.60, "total": 513.60}

    def test_correction_reverses_quantities(self):
        items = build_room_items(self._reservation(), {"t1": DOUBLE}, None)
        reversed_items = reverse_items(items)
        assert [i["quantity"] for i in reversed_items] == [-3, -3]
        assert [i["unit_price"] for i in reversed_items] == [80.0, 80.0]
        assert [i["tax_rate"] for i in reversed_items] == [7.0, 7.0]
        assert calculate_invoice_totals(reversed_items)["total"] == -513.60

    def test_rate_fallback_order(self):
        rooms = [{"room_id": "r1", "room_number": "101", "room_type_id": "t1", "nightly_rate": None}]
        plan_priced = build_room_items(self._reservation(rooms=rooms), {}, {"base_price": 95.0})
        share_priced = build_room_items(self._reservation(rooms=rooms, total_amount=330.0), {}, None)
        fallback = build_room_items(self._reservation(rooms=rooms), {}, None)
        assert plan_priced[0]["unit_price"] == 95.0
        assert share_priced[0]["unit_price"] == 110.0
        assert fallback[0]["unit_price"] == 100.0

    def test_same_day_stay_bills_one_night(self):
        items = build_room_items(self._reservation(check_out_date="2024-06-01"), {}, None)
        assert items[0]["quantity"] == 1

    def test_room_requests_without_rooms(self):
        reservation = self._reservation(rooms=[], room_requests=[{"room_type_id": "t1", "quantity": 2}])
        items = build_room_items(reservation, {"t1": {**DOUBLE, "base_rate": 70.0}}, None)
        assert len(items) == 1
        assert items[0]["quantity"] == 6
        assert items[0]["unit_price"] == 70.0

    def test_article_items_skip_empty_lines(self):
        reservation = self._reservation(articles=[
            {"description": "Breakfast", "quantity": 6, "unit_price": 15.0, "tax_rate": 7.0},
            {"description": "Parking", "quantity": 0, "unit_price": 10.0, "tax_rate": 19.0},
            {"description": "Refund", "quantity": 1, "unit_price": -5.0, "tax_rate": 19.0},
        ])
        items = build_article_items(reservation)
        assert [i["description"] for i in items] == ["Breakfast"]
        assert items[0]["total_amount"] == pytest.approx(96.30)

    def test_totals_round_to_cents(self):
        totals = calculate_invoice_totals([{"quantity": 3, "unit_price": 0.333, "tax_rate": 19}])
        assert totals["subtotal"] == 1.0
        assert totals["total"] == round(totals["subtotal"] + totals["tax"], 2)

    def test_total_matches_sum_of_sub_cent_lines(self):
        items = [normalize_item({"description": f"Water {n}", "unit_price": 0.10, "tax_rate": 7}) for n in range(3)]
        totals = calculate_invoice_totals(items)
        assert totals["total"] == 0.32
        assert totals["total"] == round(sum(i["total_amount"] for i in items), 2)
