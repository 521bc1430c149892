from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum

from app.config.settings import settings


class ChargeScheme(str, Enum):
    PER_PERSON_PER_DAY = "per_person_per_day"
    PER_ROOM_PER_DAY = "per_room_per_day"
    PER_STAY = "per_stay"
    PER_PERSON = "per_person"
    PER_DAY = "per_day"


class ArticleBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    charge_scheme: ChargeScheme = ChargeScheme.PER_STAY
    unit_price: float = Field(..., ge=0)
    tax_rate: float = Field(default=settings.ARTICLE_DEFAULT_TAX_RATE, ge=0, le=100)
    is_active: bool = True


class ArticleCreate(ArticleBase):
    pass


class ArticleUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    charge_scheme: Optional[ChargeScheme] = None
    unit_price: Optional[float] = Field(None, ge=0)
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None


class ArticleResponse(ArticleBase):
    id: str = Field(alias="_id")
    created_at: datetime
    updated_at: datetime

    class Config:
        populate_by_name = True
