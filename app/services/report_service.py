"""
Occupancy, revenue and arrival forecast reports
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Tuple

from app.config.database import Collections, db_config
from app.models.invoice import InvoiceStatus
from app.models.reservation import ReservationStatus
from app.services.exceptions import ValidationError
from app.utils.helpers import iter_dates, money, parse_date, today

logger = logging.getLogger(__name__)

OCCUPYING_STATUSES = [ReservationStatus.CONFIRMED.value, ReservationStatus.CHECKED_IN.value]
FORECAST_STATUSES = [ReservationStatus.TENTATIVE.value, ReservationStatus.CONFIRMED.value]


def parse_window(start: Any, end: Any, default_start: date, default_end: date) -> Tuple[date, date]:
    start_date = default_start if start in (None, "") else parse_date(start)
    end_date = default_end if end in (None, "") else parse_date(end)
    if start_date is None or end_date is None:
        raise ValidationError("start and end must be valid dates (YYYY-MM-DD).")
    if end_date < start_date:
        raise ValidationError("end must be on or after start.")
    return start_date, end_date


# ─── Occupancy ─────────────────────────────────────────────────────────────────

async def occupancy_report(start: Any = None, end: Any = None) -> List[Dict]:
    """
    Rooms held per night by confirmed or checked-in reservations, against
    the total room count.
    """
    start_date, end_date = parse_window(start, end, today(), today())
    rooms_coll = db_config.get_collection(Collections.ROOMS)
    total_rooms = await rooms_coll.count_documents({})

    reservations = await db_config.get_collection(Collections.RESERVATIONS).find({
        "status": {"$in": OCCUPYING_STATUSES},
        "check_in_date": {"$lte": end_date.isoformat()},
        "check_out_date": {"$gt": start_date.isoformat()},
    }).to_list(length=None)

    report = []
    for day in iter_dates(start_date, end_date):
        stamp = day.isoformat()
        occupied = set()
        for reservation in reservations:
            if reservation["check_in_date"] <= stamp < reservation["check_out_date"]:
                occupied.update(r["room_id"] for r in reservation.get("rooms") or [])
        report.append({
            "date": stamp,
            "occupied_rooms": len(occupied),
            "available_rooms": total_rooms,
            "occupancy_rate": 0 if total_rooms == 0 else round(len(occupied) / total_rooms * 100, 2),
        })
    return report


# ─── Revenue ───────────────────────────────────────────────────────────────────

async def revenue_report(start: Any = None, end: Any = None) -> Dict:
    """Invoiced totals by issue date and payments by method by paid date"""
    current = today()
    month_start = current.replace(day=1)
    month_end = (month_start + timedelta(days=32)).replace(day=1) - timedelta(days=1)
    start_date, end_date = parse_window(start, end, month_start, month_end)

    invoice_pipeline = [
        {"$match": {
            "issue_date": {"$gte": start_date.isoformat(), "$lte": end_date.isoformat()},
            "status": {"$ne": InvoiceStatus.VOID.value},
        }},
        {"$group": {
            "_id": None,
            "invoice_total": {"$sum": "$total_amount"},
            "tax_total": {"$sum": "$tax_amount"},
            "invoice_count": {"$sum": 1},
        }},
    ]
    rows = await db_config.get_collection(Collections.INVOICES).aggregate(invoice_pipeline).to_list(length=1)
    totals = rows[0] if rows else {}

    payment_pipeline = [
        {"$match": {"paid_at": {
            "$gte": datetime.combine(start_date, time.min),
            "$lte": datetime.combine(end_date, time.max),
        }}},
        {"$group": {"_id": "$method", "total_amount": {"$sum": "$amount"}, "count": {"$sum": 1}}},
        {"$sort": {"_id": 1}},
    ]
    payments = await db_config.get_collection(Collections.PAYMENTS).aggregate(payment_pipeline).to_list(length=100)

    return {
        "period": {"start": start_date.isoformat(), "end": end_date.isoformat()},
        "invoices": {
            "invoice_total": money(totals.get("invoice_total") or 0),
            "tax_total": money(totals.get("tax_total") or 0),
            "invoice_count": totals.get("invoice_count") or 0,
        },
        "payments": [
            {"method": p["_id"], "total_amount": money(p["total_amount"]), "count": p["count"]}
            for p in payments
        ],
    }


# ─── Forecast ──────────────────────────────────────────────────────────────────

async def forecast_report(start: Any = None, end: Any = None) -> Dict:
    """Tentative and confirmed arrivals in the window with expected rooms and revenue"""
    current = today()
    start_date, end_date = parse_window(start, end, current, current + timedelta(days=30))
    reservations = await db_config.get_collection(Collections.RESERVATIONS).find({
        "status": {"$in": FORECAST_STATUSES},
        "check_in_date": {"$gte": start_date.isoformat(), "$lte": end_date.isoformat()},
    }).sort("check_in_date", 1).to_list(length=None)

    rows = []
    for reservation in reservations:
        rooms = len(reservation.get("rooms") or []) or sum(
            int(r.get("quantity") or 0) for r in reservation.get("room_requests") or []
        )
        rows.append({
            "reservation_id": str(reservation["_id"]),
            "confirmation_number": reservation.get("confirmation_number"),
            "status": reservation.get("status"),
            "check_in_date": reservation.get("check_in_date"),
            "check_out_date": reservation.get("check_out_date"),
            "rooms": rooms,
            "total_amount": money(reservation.get("total_amount") or 0),
        })

    return {
        "period": {"start": start_date.isoformat(), "end": end_date.isoformat()},
        "expected_rooms": sum(r["rooms"] for r in rows),
        "expected_revenue": money(sum(r["total_amount"] for r in rows)),
        "reservations": rows,
    }
