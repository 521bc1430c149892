"""
Pydantic models for reservations, their rooms, articles and documents
"""
from pydantic import BaseModel, Field, validator
from datetime import date
from typing import List, Optional, Dict, Any
from enum import Enum

from app.models.guest import GuestCreate


class ReservationStatus(str, Enum):
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    PAID = "paid"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class RoomSelection(BaseModel):
    """A concrete room for a reservation; bare ids are accepted and normalized"""
    room_id: str = Field(..., min_length=1)
    nightly_rate: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class RoomRequest(BaseModel):
    """Unassigned demand for N units of a room type"""
    room_type_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)


class ArticleSelection(BaseModel):
    article_id: str = Field(..., min_length=1)
    multiplier: int = Field(default=1, ge=0, description="0 suppresses the line")


def _coerce_room_selections(v: Any):
    if v is None:
        return v
    if not isinstance(v, list):
        raise ValueError('rooms must be an array of room assignments')
    return [{"room_id": str(item)} if isinstance(item, (str, int)) else item for item in v]


class ReservationCreate(BaseModel):
    guest_id: Optional[str] = None
    guest: Optional[GuestCreate] = None
    confirmation_number: Optional[str] = None
    status: ReservationStatus = ReservationStatus.TENTATIVE
    check_in_date: date
    check_out_date: date
    adults: int = Field(default=1, ge=0)
    children: int = Field(default=0, ge=0)
    rate_plan_id: Optional[str] = None
    total_amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    booked_via: Optional[str] = None
    notes: Optional[str] = None
    rooms: List[RoomSelection] = []
    room_requests: List[RoomRequest] = []
    articles: List[ArticleSelection] = []
    status_notes: Optional[str] = None
    recorded_by: Optional[str] = None

    @validator('rooms', pre=True)
    def normalize_rooms(cls, v):
        return _coerce_room_selections(v) or []

    @validator('check_out_date')
    def validate_dates(cls, v, values):
        if 'check_in_date' in values and v <= values['check_in_date']:
            raise ValueError('check_out_date must be after check_in_date')
        return v


class ReservationUpdate(BaseModel):
    guest_id: Optional[str] = None
    status: Optional[ReservationStatus] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    adults: Optional[int] = Field(None, ge=0)
    children: Optional[int] = Field(None, ge=0)
    rate_plan_id: Optional[str] = None
    total_amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    booked_via: Optional[str] = None
    notes: Optional[str] = None
    rooms: Optional[List[RoomSelection]] = None
    room_requests: Optional[List[RoomRequest]] = None
    articles: Optional[List[ArticleSelection]] = None
    status_notes: Optional[str] = None
    recorded_by: Optional[str] = None

    @validator('rooms', pre=True)
    def normalize_rooms(cls, v):
        return _coerce_room_selections(v)


class StatusChange(BaseModel):
    status: ReservationStatus
    notes: Optional[str] = None
    recorded_by: Optional[str] = None


class StatusNote(BaseModel):
    """Body of the check-in / check-out shortcuts"""
    notes: Optional[str] = None
    recorded_by: Optional[str] = None


class ReservationDocumentCreate(BaseModel):
    document_type: str = Field(..., min_length=1)
    file_name: Optional[str] = None
    file_path: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    uploaded_by: Optional[str] = None


class CreatedReservation(BaseModel):
    id: str
    confirmation_number: str


class CancellationQuote(BaseModel):
    reservation_id: str
    cancellation_policy_id: Optional[str] = None
    days_before_arrival: int
    free_cancellation: bool
    penalty_amount: float
    currency: str


class UpsellRequest(BaseModel):
    service_type: str = Field(..., min_length=1)
    notes: Optional[str] = None


