from fastapi import APIRouter, status
from typing import List
from app.models.reservation import (
    ReservationCreate, ReservationUpdate, StatusChange, StatusNote,
    ReservationDocumentCreate, CreatedReservation, CancellationQuote,
)
from app.models.invoice import InvoiceCreate, InvoiceResponse, PaymentCreate
from app.services import cancellation, invoice_service, reservation_service

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post("/", response_model=CreatedReservation, status_code=status.HTTP_201_CREATED)
async def create_reservation(reservation: ReservationCreate):
    """Create a reservation; a confirmation number is generated when none is given"""
    return await reservation_service.create_reservation(reservation.model_dump())


@router.get("/")
async def get_reservations(
    reservation_status: str = None,
    date_from: str = None,
    date_to: str = None,
    skip: int = 0,
    limit: int = 100,
):
    """List reservations, newest arrival first"""
    return await reservation_service.list_reservations(reservation_status, date_from, date_to, skip, limit)


@router.get("/{reservation_id}")
async def get_reservation(reservation_id: str):
    return await reservation_service.get_reservation(reservation_id)


@router.put("/{reservation_id}")
async def update_reservation(reservation_id: str, reservation_update: ReservationUpdate):
    return await reservation_service.update_reservation(
        reservation_id, reservation_update.model_dump(exclude_unset=True)
    )


@router.post("/{reservation_id}/status")
async def change_status(reservation_id: str, body: StatusChange):
    return await reservation_service.change_reservation_status(
        reservation_id, body.status, body.notes, body.recorded_by
    )


@router.post("/{reservation_id}/check-in")
async def check_in(reservation_id: str, body: StatusNote = None):
    body = body or StatusNote()
    return await reservation_service.check_in(reservation_id, body.notes, body.recorded_by)


@router.post("/{reservation_id}/check-out")
async def check_out(reservation_id: str, body: StatusNote = None):
    body = body or StatusNote()
    return await reservation_service.check_out(reservation_id, body.notes, body.recorded_by)


@router.get("/{reservation_id}/cancellation-quote", response_model=CancellationQuote)
async def get_cancellation_quote(reservation_id: str, on_date: str = None):
    """Penalty owed when cancelling on `on_date` (default today)"""
    return await cancellation.quote_cancellation(reservation_id, on_date)


@router.post("/{reservation_id}/documents", status_code=status.HTTP_201_CREATED)
async def add_document(reservation_id: str, document: ReservationDocumentCreate):
    return await reservation_service.add_document(reservation_id, document.model_dump())


# ─── Billing ───────────────────────────────────────────────────────────────────

@router.get("/{reservation_id}/invoices", response_model=List[InvoiceResponse])
async def get_reservation_invoices(reservation_id: str):
    await reservation_service.get_reservation_document(reservation_id)
    return await invoice_service.list_invoices(reservation_id)


@router.post("/{reservation_id}/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(reservation_id: str, invoice: InvoiceCreate):
    payload = invoice.model_dump(exclude_unset=True)
    payload.setdefault("include_articles", True)
    return await invoice_service.create_invoice(reservation_id, payload)


@router.post("/{reservation_id}/pay")
async def pay_invoice(reservation_id: str, payment: PaymentCreate = None):
    """Settle the latest invoice and move the reservation to paid"""
    payload = payment.model_dump(exclude_unset=True) if payment else {}
    return await invoice_service.pay_invoice(reservation_id, payload)
