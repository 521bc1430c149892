"""
Guest self-service: reservations addressed by confirmation number instead of id
"""
import logging
from typing import Dict, Optional

from app.config.database import Collections
from app.database.db_operations import db_ops
from app.models.reservation import ReservationStatus
from app.services import reservation_service
from app.services.exceptions import NotFoundError, ValidationError
from app.utils.helpers import serialize_doc

logger = logging.getLogger(__name__)

SELF_CHECK_IN_NOTE = "Guest self check-in"


async def _find(confirmation_number: str) -> Dict:
    if not confirmation_number:
        raise ValidationError("Confirmation number required.")
    reservation = await db_ops.get_one(Collections.RESERVATIONS, {"confirmation_number": confirmation_number})
    if not reservation:
        raise NotFoundError("Reservation not found.")
    return reservation


async def get_booking(confirmation_number: str) -> Dict:
    reservation = await _find(confirmation_number)
    return await reservation_service.get_reservation(str(reservation["_id"]), include_history=False)


async def self_check_in(confirmation_number: str, notes: Optional[str] = None) -> Dict:
    reservation = await _find(confirmation_number)
    return await reservation_service.change_reservation_status(
        str(reservation["_id"]), ReservationStatus.CHECKED_IN, notes or SELF_CHECK_IN_NOTE
    )


async def add_document(confirmation_number: str, data: Dict) -> Dict:
    reservation = await _find(confirmation_number)
    return await reservation_service.add_document(str(reservation["_id"]), data)


async def order_service(confirmation_number: str, service_type: str, notes: Optional[str] = None) -> Dict:
    """Record an extra service the guest asked for as an open service order"""
    if not service_type:
        raise ValidationError("service_type is required.")
    reservation = await _find(confirmation_number)
    order = await db_ops.create(Collections.SERVICE_ORDERS, {
        "reservation_id": str(reservation["_id"]),
        "service_type": service_type,
        "status": "open",
        "notes": notes,
    })
    logger.info("Service order %s (%s) for reservation %s", order["_id"], service_type, confirmation_number)
    return serialize_doc(order)
