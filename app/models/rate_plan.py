"""
Pydantic models for rate plans, rate calendars and cancellation policies
"""
from pydantic import BaseModel, Field, validator
from datetime import date, datetime
from typing import List, Optional, Literal, Any

from app.services.rate_calendar import normalize_weekdays

PenaltyType = Literal["percent", "fixed", "nights"]


# ─── Cancellation policy ──────────────────────────────────────────────────────

class CancellationPolicyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    free_until_days: int = Field(default=0, ge=0, description="Free cancellation up to N days before arrival")
    penalty_type: PenaltyType = "percent"
    penalty_value: float = Field(default=0, ge=0)


class CancellationPolicyUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    free_until_days: Optional[int] = Field(None, ge=0)
    penalty_type: Optional[PenaltyType] = None
    penalty_value: Optional[float] = Field(None, ge=0)


# ─── Rate plan ────────────────────────────────────────────────────────────────

class RatePlanCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    base_price: float = Field(..., ge=0)
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    cancellation_policy_id: Optional[str] = None

    @validator('currency')
    def upper_currency(cls, v):
        return v.upper()


class RatePlanUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    cancellation_policy_id: Optional[str] = None


class RatePlanResponse(RatePlanCreate):
    id: str = Field(alias="_id")
    created_at: datetime
    updated_at: datetime

    class Config:
        populate_by_name = True


# ─── Rate calendar ────────────────────────────────────────────────────────────

class RateCalendarCreate(BaseModel):
    name: str = Field(..., min_length=1)


class RateCalendarRuleCreate(BaseModel):
    start_date: date
    end_date: date
    weekdays: List[int] = Field(default_factory=list, description="0 = Sunday ... 6 = Saturday")
    price: Optional[float] = Field(None, ge=0)
    cancellation_policy_id: Optional[str] = None
    closed_for_arrival: bool = False
    closed_for_departure: bool = False

    @validator('end_date')
    def validate_dates(cls, v, values):
        if 'start_date' in values and v < values['start_date']:
            raise ValueError('end_date must be on or after start_date')
        return v

    @validator('weekdays', pre=True)
    def clean_weekdays(cls, v: Any):
        return normalize_weekdays(v)


class RateCalendarRuleUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    weekdays: Optional[List[int]] = None
    price: Optional[float] = Field(None, ge=0)
    cancellation_policy_id: Optional[str] = None
    closed_for_arrival: Optional[bool] = None
    closed_for_departure: Optional[bool] = None

    @validator('weekdays', pre=True)
    def clean_weekdays(cls, v: Any):
        if v is None:
            return v
        return normalize_weekdays(v)


class DailyRate(BaseModel):
    date: date
    price: float
    currency: str
    is_weekend: bool
    closed_for_arrival: bool
    closed_for_departure: bool
    cancellation_policy_id: Optional[str] = None
    rule_id: Optional[str] = None
    calendar_id: Optional[str] = None


class RateCalendarResolution(BaseModel):
    rate_plan_id: str
    base_price: float
    currency: str
    days: List[DailyRate]
