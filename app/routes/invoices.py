from fastapi import APIRouter
from typing import List
from app.models.invoice import InvoiceResponse
from app.services import invoice_service

router = APIRouter(prefix="/invoices", tags=["Invoices"])
payments_router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("/", response_model=List[InvoiceResponse])
async def get_invoices(reservation_id: str = None, skip: int = 0, limit: int = 100):
    """Invoices, newest first"""
    return await invoice_service.list_invoices(reservation_id, skip, limit)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str):
    return await invoice_service.get_invoice(invoice_id)


@payments_router.get("/")
async def get_payments(invoice_id: str = None, skip: int = 0, limit: int = 100):
    return await invoice_service.list_payments(invoice_id, skip, limit)
