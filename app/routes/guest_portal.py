from fastapi import APIRouter, status
from app.models.reservation import ReservationDocumentCreate, StatusNote, UpsellRequest
from app.services import guest_portal_service

router = APIRouter(prefix="/guest-portal", tags=["Guest Portal"])


@router.get("/reservations/{confirmation_number}")
async def get_booking(confirmation_number: str):
    return await guest_portal_service.get_booking(confirmation_number)


@router.post("/reservations/{confirmation_number}/check-in")
async def self_check_in(confirmation_number: str, body: StatusNote = None):
    notes = body.notes if body else None
    return await guest_portal_service.self_check_in(confirmation_number, notes)


@router.post("/reservations/{confirmation_number}/documents", status_code=status.HTTP_201_CREATED)
async def add_document(confirmation_number: str, document: ReservationDocumentCreate):
    return await guest_portal_service.add_document(confirmation_number, document.model_dump())


@router.post("/reservations/{confirmation_number}/upsell", status_code=status.HTTP_201_CREATED)
async def order_service(confirmation_number: str, body: UpsellRequest):
    """Order an extra service for the stay"""
    return await guest_portal_service.order_service(confirmation_number, body.service_type, body.notes)
