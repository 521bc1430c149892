"""
Pydantic models for invoices, invoice items and payments
"""
from pydantic import BaseModel, Field, validator
from datetime import date, datetime
from typing import List, Optional
from enum import Enum


class InvoiceType(str, Enum):
    INVOICE = "invoice"
    CORRECTION = "correction"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    VOID = "void"


class InvoiceItemIn(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: float = 1
    unit_price: float = 0
    tax_rate: Optional[float] = Field(None, ge=0, le=100)


class InvoiceCreate(BaseModel):
    type: InvoiceType = InvoiceType.INVOICE
    parent_invoice_id: Optional[str] = None
    items: Optional[List[InvoiceItemIn]] = None
    include_articles: bool = True
    invoice_number: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    status: InvoiceStatus = InvoiceStatus.ISSUED
    notes: Optional[str] = None


class PaymentCreate(BaseModel):
    amount: Optional[float] = None
    method: str = "cash"
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    paid_at: Optional[datetime] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


class InvoiceItemOut(BaseModel):
    description: str
    quantity: float
    unit_price: float
    tax_rate: float
    total_amount: float

    @validator('total_amount')
    def round_total(cls, v):
        # stored unrounded, shown to the cent
        return round(v, 2)


class InvoiceResponse(BaseModel):
    id: str = Field(alias="_id")
    reservation_id: str
    type: InvoiceType
    invoice_number: Optional[str] = None
    correction_number: Optional[str] = None
    parent_invoice_id: Optional[str] = None
    issue_date: date
    due_date: Optional[date] = None
    currency: str
    subtotal_amount: float
    tax_amount: float
    total_amount: float
    status: InvoiceStatus
    items: List[InvoiceItemOut]
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
