"""
Invoice/Billing Builder – invoice line items, totals, correction invoices and
payments for reservations.

Invoices embed a snapshot of their items; later edits to the reservation
never change an issued invoice. A correction invoice reverses (or restates)
a parent invoice instead of editing it.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from app.config.database import Collections
from app.config.settings import settings
from app.database.db_operations import db_ops, to_object_id
from app.models.invoice import InvoiceStatus, InvoiceType
from app.models.reservation import ReservationStatus
from app.services.exceptions import ConflictError, NotFoundError, ValidationError
from app.services.reservation_service import apply_status, get_reservation_document
from app.services.sequence_service import next_correction_number, next_invoice_number
from app.services.transaction import atomic
from app.utils.helpers import (
    money, nights_between, normalize_currency, parse_date, serialize_doc, serialize_docs, today, utcnow,
)

logger = logging.getLogger(__name__)


# ─── line items and totals ────────────────────────────────────────────────────

def line_total(quantity: float, unit_price: float, tax_rate: float) -> float:
    """Gross amount of one line, unrounded; only invoice totals are rounded to cents"""
    return quantity * unit_price * (1 + tax_rate / 100)


def normalize_item(item: Dict) -> Dict:
    if not (item or {}).get("description"):
        raise ValidationError("Each invoice item requires a description.")
    quantity = float(item["quantity"]) if item.get("quantity") is not None else 1.0
    unit_price = float(item["unit_price"]) if item.get("unit_price") is not None else 0.0
    tax_rate = float(item["tax_rate"]) if item.get("tax_rate") is not None else 0.0
    return {
        "description": item["description"],
        "quantity": quantity,
        "unit_price": unit_price,
        "tax_rate": tax_rate,
        "total_amount": line_total(quantity, unit_price, tax_rate),
    }


def calculate_invoice_totals(items: List[Dict]) -> Dict[str, float]:
    subtotal = 0.0
    tax = 0.0
    for item in items:
        net = float(item.get("quantity") or 0) * float(item.get("unit_price") or 0)
        subtotal += net
        tax += net * float(item.get("tax_rate") or 0) / 100
    return {"subtotal": money(subtotal), "tax": money(tax), "total": money(subtotal + tax)}


def reverse_items(items: List[Dict]) -> List[Dict]:
    """Parent items with the quantity sign inverted"""
    return [
        normalize_item({**item, "quantity": -float(item.get("quantity") or 0)})
        for item in items
    ]


def _share_of_total(reservation: Dict, units: int, nights: int) -> Optional[float]:
    total = reservation.get("total_amount")
    if total is None or units <= 0 or nights <= 0:
        return None
    return money(float(total) / units / nights)


def build_room_items(reservation: Dict, room_types: Dict[str, Dict], rate_plan: Optional[Dict]) -> List[Dict]:
    """
    One line per assigned room (or per room-type request when no rooms are
    assigned): nights x nightly rate at the reduced room-night tax rate.
    The rate is the room's stored rate, else the rate plan base price, else
    a share of the reservation total, else the configured fallback.
    """
    check_in = parse_date(reservation.get("check_in_date"))
    check_out = parse_date(reservation.get("check_out_date"))
    nights = max(1, nights_between(check_in, check_out))
    plan_price = (rate_plan or {}).get("base_price")
    rooms = reservation.get("rooms") or []
    requests = reservation.get("room_requests") or []
    tax_rate = settings.ROOM_NIGHT_TAX_RATE

    def pick(*candidates):
        for candidate in candidates:
            if candidate is not None:
                return float(candidate)
        return settings.FALLBACK_NIGHTLY_RATE

    items = []
    if rooms:
        share = _share_of_total(reservation, len(rooms), nights)
        for room in rooms:
            room_type = room_types.get(str(room.get("room_type_id"))) or {}
            label = f"Room {room.get('room_number') or room.get('room_id')}"
            if room_type.get("name"):
                label = f"{label} ({room_type['name']})"
            unit_price = pick(room.get("nightly_rate"), plan_price, share)
            items.append(normalize_item({
                "description": f"{label}, {nights} night(s)",
                "quantity": nights,
                "unit_price": unit_price,
                "tax_rate": tax_rate,
            }))
        return items

    share = _share_of_total(reservation, sum(int(r.get("quantity") or 0) for r in requests), nights)
    for request in requests:
        room_type = room_types.get(str(request.get("room_type_id"))) or {}
        quantity = int(request.get("quantity") or 0)
        unit_price = pick(plan_price, room_type.get("base_rate"), share)
        items.append(normalize_item({
            "description": f"{quantity} x {room_type.get('name') or 'Room'}, {nights} night(s)",
            "quantity": nights * quantity,
            "unit_price": unit_price,
            "tax_rate": tax_rate,
        }))
    return items


def build_article_items(reservation: Dict) -> List[Dict]:
    """Invoice lines from the reservation's priced articles"""
    items = []
    for article in reservation.get("articles") or []:
        quantity = float(article.get("quantity") or 0)
        unit_price = float(article.get("unit_price") or 0)
        if quantity <= 0 or unit_price < 0:
            continue
        items.append(normalize_item({
            "description": article.get("description") or "Article",
            "quantity": quantity,
            "unit_price": unit_price,
            "tax_rate": article.get("tax_rate"),
        }))
    return items


async def _load_room_types(reservation: Dict) -> Dict[str, Dict]:
    ids = [r.get("room_type_id") for r in reservation.get("rooms") or []]
    ids += [r.get("room_type_id") for r in reservation.get("room_requests") or []]
    oids = [o for o in (to_object_id(i) for i in ids if i) if o is not None]
    if not oids:
        return {}
    docs = await db_ops.get_all(Collections.ROOM_TYPES, {"_id": {"$in": oids}}, limit=len(oids))
    return {str(d["_id"]): d for d in docs}


async def derive_items(reservation: Dict, include_articles: bool = True) -> List[Dict]:
    rate_plan = None
    if reservation.get("rate_plan_id"):
        rate_plan = await db_ops.get_by_id(Collections.RATE_PLANS, reservation["rate_plan_id"])
    items = build_room_items(reservation, await _load_room_types(reservation), rate_plan)
    if include_articles:
        items += build_article_items(reservation)
    return items


# ─── queries ──────────────────────────────────────────────────────────────────

async def get_invoice_document(invoice_id: str) -> Dict:
    invoice = await db_ops.get_by_id(Collections.INVOICES, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice not found.")
    return invoice


async def get_invoice(invoice_id: str) -> Dict:
    return serialize_doc(await get_invoice_document(invoice_id))


async def list_invoices(reservation_id: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Dict]:
    query = {"reservation_id": reservation_id} if reservation_id else {}
    docs = await db_ops.get_all(
        Collections.INVOICES, query, skip=skip, limit=limit, sort=[("created_at", -1), ("_id", -1)]
    )
    return serialize_docs(docs)


async def list_payments(invoice_id: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Dict]:
    query = {"invoice_id": invoice_id} if invoice_id else {}
    docs = await db_ops.get_all(
        Collections.PAYMENTS, query, skip=skip, limit=limit, sort=[("paid_at", -1), ("_id", -1)]
    )
    return serialize_docs(docs)


# ─── create ───────────────────────────────────────────────────────────────────

async def create_invoice(reservation_id: str, payload: Dict) -> Dict:
    """
    Issue an invoice (or a correction invoice) for a reservation. Explicit
    items win over items derived from the reservation's rooms and articles.
    """
    data = dict(payload or {})
    reservation = await get_reservation_document(reservation_id)
    try:
        invoice_type = InvoiceType(data.get("type") or InvoiceType.INVOICE).value
        status = InvoiceStatus(data.get("status") or InvoiceStatus.ISSUED).value
    except ValueError as exc:
        raise ValidationError(str(exc)) from None
    explicit_items = data.get("items")

    parent = None
    if invoice_type == InvoiceType.CORRECTION.value:
        parent_id = data.get("parent_invoice_id")
        if not parent_id:
            raise ValidationError("parent_invoice_id is required for a correction invoice.")
        parent = await db_ops.get_by_id(Collections.INVOICES, parent_id)
        if not parent:
            raise ValidationError(f"Parent invoice {parent_id} not found.")
        if parent.get("reservation_id") != reservation_id:
            raise ValidationError("The parent invoice belongs to a different reservation.")

    if explicit_items:
        items = [normalize_item(item) for item in explicit_items]
    elif parent is not None:
        items = reverse_items(parent.get("items") or [])
    else:
        items = await derive_items(reservation, data.get("include_articles", True))
    if not items:
        raise ValidationError("The invoice has no billable items.")

    issue_date = parse_date(data.get("issue_date")) or today()
    due_date = parse_date(data.get("due_date")) or issue_date + timedelta(days=settings.INVOICE_DUE_DAYS)
    totals = calculate_invoice_totals(items)

    invoice_number = data.get("invoice_number")
    correction_number = None
    if invoice_type == InvoiceType.CORRECTION.value:
        correction_number = await next_correction_number()
    elif invoice_number:
        if await db_ops.get_one(Collections.INVOICES, {"invoice_number": invoice_number}):
            raise ConflictError(f"Invoice number {invoice_number} already exists.")
    else:
        invoice_number = await next_invoice_number()

    document = {
        "reservation_id": reservation_id,
        "type": invoice_type,
        "invoice_number": invoice_number,
        "correction_number": correction_number,
        "parent_invoice_id": str(parent["_id"]) if parent else None,
        "issue_date": issue_date.isoformat(),
        "due_date": due_date.isoformat(),
        "currency": normalize_currency(reservation.get("currency")),
        "subtotal_amount": totals["subtotal"],
        "tax_amount": totals["tax"],
        "total_amount": totals["total"],
        "status": status,
        "notes": data.get("notes"),
        "items": items,
    }
    async with atomic("create the invoice") as session:
        created = await db_ops.create(Collections.INVOICES, document, session=session)

    logger.info(
        "%s %s issued for reservation %s: %.2f %s",
        invoice_type.capitalize(), correction_number or invoice_number,
        reservation.get("confirmation_number"), totals["total"], document["currency"],
    )
    return serialize_doc(created)


# ─── payment ──────────────────────────────────────────────────────────────────

async def latest_invoice(reservation_id: str) -> Optional[Dict]:
    docs = await db_ops.get_all(
        Collections.INVOICES,
        {
            "reservation_id": reservation_id,
            "type": InvoiceType.INVOICE.value,
            "status": {"$ne": InvoiceStatus.VOID.value},
        },
        limit=1,
        sort=[("created_at", -1), ("_id", -1)],
    )
    return docs[0] if docs else None


async def pay_invoice(reservation_id: str, payload: Dict) -> Dict[str, Any]:
    """
    Settle the reservation's latest invoice: record the payment, mark the
    invoice paid and move the reservation to `paid`, all in one transaction.
    An invoice that is already paid is returned unchanged.
    """
    data = dict(payload or {})
    reservation = await get_reservation_document(reservation_id)
    invoice = await latest_invoice(reservation_id)
    if not invoice:
        raise ValidationError("No invoice exists for this reservation.")

    if invoice.get("status") == InvoiceStatus.PAID.value:
        logger.info("Invoice %s already paid; no payment recorded", invoice.get("invoice_number"))
        return {"invoice": serialize_doc(invoice), "payment": None, "message": "Invoice already paid."}

    amount = data.get("amount")
    amount = float(invoice.get("total_amount") or 0) if amount is None else float(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")

    payment = {
        "invoice_id": str(invoice["_id"]),
        "reservation_id": reservation_id,
        "method": data.get("method") or "cash",
        "amount": money(amount),
        "currency": normalize_currency(data.get("currency") or invoice.get("currency")),
        "paid_at": data.get("paid_at") or utcnow(),
        "reference": data.get("reference"),
        "notes": data.get("notes"),
    }
    async with atomic("record the payment") as session:
        created = await db_ops.create(Collections.PAYMENTS, payment, session=session)
        updated = await db_ops.update(
            Collections.INVOICES, str(invoice["_id"]), {"status": InvoiceStatus.PAID.value}, session=session
        )
        await apply_status(
            reservation, ReservationStatus.PAID.value,
            notes=f"Invoice {invoice.get('invoice_number')} paid", recorded_by=data.get("recorded_by"),
            session=session,
        )

    logger.info(
        "Payment of %.2f %s recorded for invoice %s (%s)",
        payment["amount"], payment["currency"], invoice.get("invoice_number"), payment["method"],
    )
    return {"invoice": serialize_doc(updated), "payment": serialize_doc(created)}
