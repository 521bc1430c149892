"""
Reservation Lifecycle Manager – creation, update and status transitions of
reservations, coordinating capacity, availability, rate and article pricing.

Status values form a flat set: any recognized status may be set from any
other. Entering a status writes a status-log entry and, for some statuses,
moves the reservation's rooms:

    checked_in, paid       -> rooms occupied
    checked_out            -> rooms in_cleaning
    cancelled, no_show     -> rooms available
    tentative, confirmed   -> rooms untouched

All checks run before the first write; the writes of one operation share a
single transaction.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from app.config.database import Collections, db_config
from app.database.db_operations import db_ops, session_kwargs, to_object_id
from app.models.reservation import ReservationStatus
from app.services import catalog, housekeeping
from app.services.article_pricing import build_article_rows, recalculate_articles
from app.services.availability import RELEASED_STATUSES, ensure_room_available, room_locks
from app.services.capacity import (
    describe_selection, guest_count, non_negative, request_units, room_units, validate_capacity,
)
from app.services.exceptions import ConflictError, NotFoundError, ValidationError
from app.services.sequence_service import next_confirmation_number
from app.services.transaction import atomic
from app.utils.helpers import nights_between, normalize_currency, parse_date, serialize_doc, serialize_docs, utcnow

logger = logging.getLogger(__name__)

ROOM_STATUS_EFFECTS = {
    ReservationStatus.CHECKED_IN.value: "occupied",
    ReservationStatus.PAID.value: "occupied",
    ReservationStatus.CHECKED_OUT.value: "in_cleaning",
    ReservationStatus.CANCELLED.value: "available",
    ReservationStatus.NO_SHOW.value: "available",
}

ROOM_MOVE_NOTE = "Room change"

UPDATABLE_FIELDS = [
    "guest_id", "status", "check_in_date", "check_out_date", "adults", "children",
    "rate_plan_id", "total_amount", "currency", "booked_via", "notes",
]

GUEST_FIELDS = ["first_name", "last_name", "email", "phone", "address", "city", "country", "company_id", "notes"]


# ─── input normalization ──────────────────────────────────────────────────────

def parse_status(value: Any) -> str:
    if isinstance(value, ReservationStatus):
        return value.value
    try:
        return ReservationStatus(str(value)).value
    except ValueError:
        raise ValidationError(f"Unknown reservation status '{value}'.") from None


def parse_stay(check_in: Any, check_out: Any) -> Tuple[date, date]:
    check_in_date = parse_date(check_in)
    if check_in_date is None:
        raise ValidationError("Invalid or missing check_in_date")
    check_out_date = parse_date(check_out)
    if check_out_date is None:
        raise ValidationError("Invalid or missing check_out_date")
    if check_out_date <= check_in_date:
        raise ValidationError("check_out_date must be after check_in_date.")
    return check_in_date, check_out_date


def normalize_room_selections(rooms: Any) -> List[Dict]:
    """
    Accept room ids or {room_id, nightly_rate?, currency?} objects and return
    uniform selections.
    """
    if rooms is None:
        return []
    if not isinstance(rooms, list):
        raise ValidationError("rooms must be an array of room assignments.")

    selections = []
    for item in rooms:
        if isinstance(item, dict):
            room_id = item.get("room_id")
            nightly_rate = item.get("nightly_rate")
            currency = item.get("currency")
        else:
            room_id, nightly_rate, currency = item, None, None
        if room_id in (None, "", 0):
            raise ValidationError("room_id is required for each room assignment.")
        if nightly_rate is not None:
            try:
                nightly_rate = float(nightly_rate)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid nightly_rate for room {room_id}.") from None
            if nightly_rate < 0:
                raise ValidationError(f"nightly_rate for room {room_id} must not be negative.")
        selections.append({"room_id": str(room_id), "nightly_rate": nightly_rate, "currency": currency or None})

    room_ids = [s["room_id"] for s in selections]
    if len(set(room_ids)) != len(room_ids):
        raise ValidationError("A room can only be assigned once per reservation.")
    return selections


def normalize_room_requests(requests: Any) -> List[Dict]:
    if requests is None:
        return []
    if not isinstance(requests, list):
        raise ValidationError("room_requests must be an array.")
    normalized = []
    for item in requests:
        room_type_id = (item or {}).get("room_type_id")
        if not room_type_id:
            raise ValidationError("room_type_id is required for each room request.")
        try:
            quantity = int(item.get("quantity", 1))
        except (TypeError, ValueError):
            raise ValidationError("quantity must be a whole number.") from None
        if quantity < 1:
            raise ValidationError("quantity must be at least 1.")
        normalized.append({"room_type_id": str(room_type_id), "quantity": quantity})
    return normalized


def _validate_guest_payload(guest: Any) -> Dict:
    if not isinstance(guest, dict):
        raise ValidationError("Guest information is required.")
    for field in ("first_name", "last_name"):
        if not guest.get(field):
            raise ValidationError(f"Guest field {field} is required.")
    return guest


# ─── pricing of room assignments ──────────────────────────────────────────────

def resolve_nightly_rate(selection: Dict, rate_plan: Optional[Dict], room_type: Optional[Dict]) -> Optional[float]:
    """explicit rate -> rate plan base price -> room type base rate -> None"""
    if selection.get("nightly_rate") is not None:
        return float(selection["nightly_rate"])
    if rate_plan and rate_plan.get("base_price") is not None:
        return float(rate_plan["base_price"])
    if room_type and room_type.get("base_rate") is not None:
        return float(room_type["base_rate"])
    return None


def resolve_currency(selection: Dict, rate_plan: Optional[Dict], reservation_currency: Optional[str]) -> str:
    """explicit currency -> rate plan currency -> reservation currency -> default"""
    for candidate in (selection.get("currency"), (rate_plan or {}).get("currency"), reservation_currency):
        if candidate:
            return normalize_currency(candidate)
    return normalize_currency(None)


def build_room_row(selection: Dict, room: Dict, room_types: Dict[str, Dict],
                   rate_plan: Optional[Dict], reservation_currency: str) -> Dict:
    room_type = room_types.get(str(room.get("room_type_id")))
    return {
        "room_id": str(room["_id"]),
        "room_number": room.get("room_number"),
        "room_type_id": room.get("room_type_id"),
        "nightly_rate": resolve_nightly_rate(selection, rate_plan, room_type),
        "currency": resolve_currency(selection, rate_plan, reservation_currency),
    }


async def check_capacity(guests: int, rooms: List[Dict], requests: List[Dict]) -> Dict[str, Dict]:
    """
    Validate the guest count against concrete rooms when any are assigned,
    otherwise against the room-type requests. Returns the room types loaded.
    """
    if rooms:
        room_types = await catalog.room_types_for_rooms(rooms, error=ConflictError)
        units = room_units(rooms, room_types)
    elif requests:
        room_types = await catalog.get_room_types([r["room_type_id"] for r in requests], error=ConflictError)
        units = request_units(requests, room_types)
    else:
        raise ValidationError("At least one room or room-type request is required.")
    validate_capacity(guests, units, describe_selection(units))
    return room_types


def _room_count(room_rows: List[Dict], requests: List[Dict]) -> int:
    return len(room_rows) or sum(r.get("quantity", 0) for r in requests)


# ─── status bookkeeping ───────────────────────────────────────────────────────

async def record_status(reservation_id: str, room_ids: List[str], status: str, notes: Optional[str],
                        recorded_by: Optional[str], session=None) -> None:
    """Append the status-log entry and apply the status's room side effects"""
    coll = db_config.get_collection(Collections.RESERVATION_STATUS_LOGS)
    await coll.insert_one({
        "reservation_id": reservation_id,
        "status": status,
        "notes": notes,
        "recorded_by": recorded_by,
        "recorded_at": utcnow(),
    }, **session_kwargs(session))

    room_status = ROOM_STATUS_EFFECTS.get(status)
    if room_status and room_ids:
        await housekeeping.set_rooms_status(room_ids, room_status, notes, recorded_by, session=session)


async def apply_status(reservation: Dict, status: str, notes: Optional[str] = None,
                       recorded_by: Optional[str] = None, session=None) -> None:
    """Persist a status change inside the caller's transaction"""
    reservation_id = str(reservation["_id"])
    await db_ops.update(Collections.RESERVATIONS, reservation_id, {"status": status}, session=session)
    room_ids = [r["room_id"] for r in reservation.get("rooms") or []]
    await record_status(reservation_id, room_ids, status, notes, recorded_by, session)


# ─── queries ──────────────────────────────────────────────────────────────────

async def get_reservation_document(reservation_id: str, session=None) -> Dict:
    reservation = await db_ops.get_by_id(Collections.RESERVATIONS, reservation_id, session=session)
    if not reservation:
        raise NotFoundError("Reservation not found.")
    return reservation


async def _attach_guest(reservations: List[Dict]) -> List[Dict]:
    guest_ids = [to_object_id(r.get("guest_id")) for r in reservations]
    guests = await db_ops.get_all(
        Collections.GUESTS, {"_id": {"$in": [g for g in guest_ids if g is not None]}}, limit=len(guest_ids) or 1
    )
    by_id = {str(g["_id"]): g for g in guests}
    for reservation in reservations:
        guest = by_id.get(str(reservation.get("guest_id"))) or {}
        reservation["first_name"] = guest.get("first_name")
        reservation["last_name"] = guest.get("last_name")
        reservation["email"] = guest.get("email")
        reservation["phone"] = guest.get("phone")
    return reservations


async def get_reservation(reservation_id: str, include_history: bool = True) -> Dict:
    """Reservation with guest contact, rooms, articles, documents and status history"""
    reservation = await get_reservation_document(reservation_id)
    await _attach_guest([reservation])
    reservation["documents"] = serialize_docs(await db_ops.get_all(
        Collections.RESERVATION_DOCUMENTS, {"reservation_id": reservation_id}, sort=[("uploaded_at", -1), ("_id", -1)]
    ))
    if include_history:
        reservation["status_history"] = serialize_docs(await db_ops.get_all(
            Collections.RESERVATION_STATUS_LOGS, {"reservation_id": reservation_id}, sort=[("recorded_at", -1), ("_id", -1)]
        ))
    return serialize_doc(reservation)


async def get_reservation_by_confirmation(confirmation_number: str, include_history: bool = False) -> Dict:
    reservation = await db_ops.get_one(Collections.RESERVATIONS, {"confirmation_number": confirmation_number})
    if not reservation:
        raise NotFoundError("Reservation not found.")
    return await get_reservation(str(reservation["_id"]), include_history=include_history)


async def list_reservations(status: Optional[str] = None, date_from: Any = None, date_to: Any = None,
                            skip: int = 0, limit: int = 100) -> List[Dict]:
    query: Dict[str, Any] = {}
    if status:
        query["status"] = parse_status(status)
    start = parse_date(date_from)
    end = parse_date(date_to)
    if start:
        query["check_in_date"] = {"$gte": start.isoformat()}
    if end:
        query["check_out_date"] = {"$lte": end.isoformat()}
    reservations = await db_ops.get_all(
        Collections.RESERVATIONS, query, skip=skip, limit=limit, sort=[("check_in_date", -1)]
    )
    await _attach_guest(reservations)
    return serialize_docs(reservations)


# ─── create ───────────────────────────────────────────────────────────────────

async def create_reservation(payload: Dict) -> Dict:
    """
    Create a reservation with its guest, rooms, room-type requests and
    articles. Returns {"id", "confirmation_number"}.
    """
    data = dict(payload or {})
    check_in, check_out = parse_stay(data.get("check_in_date"), data.get("check_out_date"))
    adults = data.get("adults", 1)
    children = data.get("children", 0)
    guests = guest_count(adults, children)
    if guests < 1:
        raise ValidationError("At least one guest (adults + children) is required.")
    status = parse_status(data.get("status") or ReservationStatus.TENTATIVE)

    guest_id = data.get("guest_id")
    guest_payload = data.get("guest")
    if guest_id:
        await catalog.get_guest(guest_id, error=ConflictError)
    else:
        guest_payload = _validate_guest_payload(guest_payload)

    selections = normalize_room_selections(data.get("rooms"))
    requests = normalize_room_requests(data.get("room_requests"))
    rate_plan = None
    if data.get("rate_plan_id"):
        rate_plan = await catalog.get_rate_plan(data["rate_plan_id"], error=ConflictError)

    rooms_by_id = await catalog.get_rooms([s["room_id"] for s in selections]) if selections else {}
    rooms = [rooms_by_id[s["room_id"]] for s in selections]
    room_types = await check_capacity(guests, rooms, requests)

    currency = normalize_currency(data.get("currency"))
    room_rows = [build_room_row(s, rooms_by_id[s["room_id"]], room_types, rate_plan, currency) for s in selections]
    nights = nights_between(check_in, check_out)
    articles = await build_article_rows(data.get("articles") or [], nights, guests, _room_count(room_rows, requests))

    confirmation = data.get("confirmation_number")
    if confirmation:
        if await db_ops.get_one(Collections.RESERVATIONS, {"confirmation_number": confirmation}):
            raise ConflictError(f"Confirmation number {confirmation} already exists.")
    else:
        confirmation = await next_confirmation_number()

    document = {
        "confirmation_number": confirmation,
        "guest_id": guest_id,
        "status": status,
        "check_in_date": check_in.isoformat(),
        "check_out_date": check_out.isoformat(),
        "adults": non_negative(adults),
        "children": non_negative(children),
        "rate_plan_id": str(rate_plan["_id"]) if rate_plan else None,
        "total_amount": data.get("total_amount"),
        "currency": currency,
        "booked_via": data.get("booked_via"),
        "notes": data.get("notes"),
        "rooms": room_rows,
        "room_requests": requests,
        "articles": articles,
    }

    async with room_locks(rooms_by_id):
        for room in rooms:
            await ensure_room_available(room, check_in, check_out)
        async with atomic("create the reservation") as session:
            if not guest_id:
                guest = {field: guest_payload.get(field) for field in GUEST_FIELDS}
                created_guest = await db_ops.create(Collections.GUESTS, guest, session=session)
                document["guest_id"] = str(created_guest["_id"])
            created = await db_ops.create(Collections.RESERVATIONS, document, session=session)
            await record_status(
                str(created["_id"]), [r["room_id"] for r in room_rows], status,
                data.get("status_notes"), data.get("recorded_by"), session,
            )

    logger.info(
        "Reservation %s created: %s..%s, %d guest(s), %d room(s)",
        confirmation, check_in, check_out, guests, len(room_rows),
    )
    return {"id": str(created["_id"]), "confirmation_number": confirmation}


# ─── update ───────────────────────────────────────────────────────────────────

async def update_reservation(reservation_id: str, payload: Dict) -> Dict:
    """
    Merge the supplied fields over the stored reservation and re-validate the
    resulting stay. Rooms and room requests are replaced when supplied.
    Articles are replaced when supplied, otherwise re-priced in place if the
    dates, guests or rooms changed.
    """
    current = await get_reservation_document(reservation_id)
    data = dict(payload or {})
    updates = {field: data[field] for field in UPDATABLE_FIELDS if field in data}
    rooms_replaced = data.get("rooms") is not None
    requests_replaced = data.get("room_requests") is not None
    articles_replaced = data.get("articles") is not None
    if not updates and not (rooms_replaced or requests_replaced or articles_replaced):
        raise ValidationError("No changes supplied.")

    check_in, check_out = parse_stay(
        updates.get("check_in_date", current.get("check_in_date")),
        updates.get("check_out_date", current.get("check_out_date")),
    )
    adults = updates.get("adults", current.get("adults"))
    children = updates.get("children", current.get("children"))
    guests = guest_count(adults, children)
    previous_status = current.get("status")
    status = parse_status(updates["status"]) if "status" in updates else previous_status

    if "guest_id" in updates:
        await catalog.get_guest(updates["guest_id"], error=ConflictError)
    rate_plan_id = updates.get("rate_plan_id", current.get("rate_plan_id"))
    rate_plan = await catalog.get_rate_plan(rate_plan_id, error=ConflictError) if rate_plan_id else None
    currency = normalize_currency(updates.get("currency") or current.get("currency"))

    if rooms_replaced:
        selections = normalize_room_selections(data["rooms"])
    else:
        selections = [
            {"room_id": r["room_id"], "nightly_rate": r.get("nightly_rate"), "currency": r.get("currency")}
            for r in current.get("rooms") or []
        ]
    requests = normalize_room_requests(data["room_requests"]) if requests_replaced else current.get("room_requests") or []

    rooms_by_id = await catalog.get_rooms([s["room_id"] for s in selections]) if selections else {}
    rooms = [rooms_by_id[s["room_id"]] for s in selections]
    room_types = await check_capacity(guests, rooms, requests)

    if rooms_replaced:
        room_rows = [build_room_row(s, rooms_by_id[s["room_id"]], room_types, rate_plan, currency) for s in selections]
    else:
        room_rows = current.get("rooms") or []

    dates_changed = (check_in.isoformat(), check_out.isoformat()) != (
        current.get("check_in_date"), current.get("check_out_date")
    )
    guests_changed = guests != guest_count(current.get("adults"), current.get("children"))
    nights = nights_between(check_in, check_out)
    room_count = _room_count(room_rows, requests)

    fields: Dict[str, Any] = {key: value for key, value in updates.items()}
    fields["check_in_date"] = check_in.isoformat()
    fields["check_out_date"] = check_out.isoformat()
    fields["adults"] = non_negative(adults)
    fields["children"] = non_negative(children)
    fields["status"] = status
    fields["currency"] = currency
    if "rate_plan_id" in updates:
        fields["rate_plan_id"] = str(rate_plan["_id"]) if rate_plan else None
    if rooms_replaced:
        fields["rooms"] = room_rows
    if requests_replaced:
        fields["room_requests"] = requests
    if articles_replaced:
        fields["articles"] = await build_article_rows(data["articles"], nights, guests, room_count)
    elif dates_changed or guests_changed or rooms_replaced or requests_replaced:
        fields["articles"] = recalculate_articles(current.get("articles") or [], nights, guests, room_count)

    old_room_ids = [r["room_id"] for r in current.get("rooms") or []]
    new_room_ids = [r["room_id"] for r in room_rows]
    dropped = [r for r in old_room_ids if r not in new_room_ids] if rooms_replaced else []
    added = [r for r in new_room_ids if r not in old_room_ids] if rooms_replaced else []

    holds_rooms = status not in RELEASED_STATUSES
    reactivated = previous_status in RELEASED_STATUSES and holds_rooms
    must_check = holds_rooms and (dates_changed or rooms_replaced or reactivated)

    async with room_locks(rooms_by_id if must_check else []):
        if must_check:
            for room in rooms:
                await ensure_room_available(room, check_in, check_out, exclude_reservation_id=reservation_id)
        async with atomic("update the reservation") as session:
            await db_ops.update(Collections.RESERVATIONS, reservation_id, fields, session=session)
            if "status" in updates:
                await record_status(
                    reservation_id, [r["room_id"] for r in room_rows], status,
                    data.get("status_notes"), data.get("recorded_by"), session,
                )
            # an in-house guest moving rooms frees the old ones and takes the new ones
            if dropped and ROOM_STATUS_EFFECTS.get(previous_status) == "occupied":
                await housekeeping.set_rooms_status(
                    dropped, "available", ROOM_MOVE_NOTE, data.get("recorded_by"), session=session
                )
            if added and "status" not in updates and ROOM_STATUS_EFFECTS.get(status) == "occupied":
                await housekeeping.set_rooms_status(
                    added, "occupied", ROOM_MOVE_NOTE, data.get("recorded_by"), session=session
                )

    logger.info("Reservation %s updated (%s)", current.get("confirmation_number"), ", ".join(sorted(fields)))
    return {"updated": True}


# ─── status transitions ───────────────────────────────────────────────────────

async def change_reservation_status(reservation_id: str, status: Any, notes: Optional[str] = None,
                                    recorded_by: Optional[str] = None) -> Dict:
    """
    Set any recognized status. A reservation leaving cancelled/no_show takes
    its rooms back, so their availability is re-checked first.
    """
    status = parse_status(status)
    reservation = await get_reservation_document(reservation_id)
    room_ids = [r["room_id"] for r in reservation.get("rooms") or []]
    reactivated = reservation.get("status") in RELEASED_STATUSES and status not in RELEASED_STATUSES

    async with room_locks(room_ids if reactivated else []):
        if reactivated and room_ids:
            check_in, check_out = parse_stay(reservation.get("check_in_date"), reservation.get("check_out_date"))
            rooms = await catalog.get_rooms(room_ids)
            for room_id in room_ids:
                await ensure_room_available(rooms[room_id], check_in, check_out, exclude_reservation_id=reservation_id)
        async with atomic("change the reservation status") as session:
            await apply_status(reservation, status, notes, recorded_by, session)

    logger.info("Reservation %s: %s -> %s", reservation.get("confirmation_number"), reservation.get("status"), status)
    return {"status": status}


async def check_in(reservation_id: str, notes: Optional[str] = None, recorded_by: Optional[str] = None) -> Dict:
    return await change_reservation_status(reservation_id, ReservationStatus.CHECKED_IN, notes, recorded_by)


async def check_out(reservation_id: str, notes: Optional[str] = None, recorded_by: Optional[str] = None) -> Dict:
    return await change_reservation_status(reservation_id, ReservationStatus.CHECKED_OUT, notes, recorded_by)


# ─── documents ────────────────────────────────────────────────────────────────

async def add_document(reservation_id: str, data: Dict) -> Dict:
    await get_reservation_document(reservation_id)
    if not data.get("document_type"):
        raise ValidationError("document_type is required.")
    document = {
        "reservation_id": reservation_id,
        "document_type": data["document_type"],
        "file_name": data.get("file_name"),
        "file_path": data.get("file_path"),
        "metadata": data.get("metadata"),
        "uploaded_by": data.get("uploaded_by"),
        "uploaded_at": utcnow(),
    }
    created = await db_ops.create(Collections.RESERVATION_DOCUMENTS, document)
    return serialize_doc(created)
