from pydantic import BaseModel, Field, validator
from datetime import datetime
from typing import Optional, Literal

RoomStatus = Literal["available", "occupied", "out_of_order", "in_cleaning"]


class RoomTypeBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    base_occupancy: int = Field(default=1, ge=0)
    max_occupancy: int = Field(default=1, ge=0)
    base_rate: Optional[float] = Field(None, ge=0, description="Nightly rate when no rate plan applies")
    currency: str = Field(default="EUR", min_length=3, max_length=3)

    @validator('max_occupancy')
    def validate_occupancy(cls, v, values):
        if 'base_occupancy' in values and v < values['base_occupancy']:
            raise ValueError('max_occupancy must be >= base_occupancy')
        return v

    @validator('currency')
    def upper_currency(cls, v):
        return v.upper()


class RoomTypeCreate(RoomTypeBase):
    pass


class RoomTypeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    base_occupancy: Optional[int] = Field(None, ge=0)
    max_occupancy: Optional[int] = Field(None, ge=0)
    base_rate: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class RoomTypeResponse(RoomTypeBase):
    id: str = Field(alias="_id")
    created_at: datetime
    updated_at: datetime

    class Config:
        populate_by_name = True


class RoomBase(BaseModel):
    room_number: str = Field(..., min_length=1, description="Room number (e.g. '101')")
    room_type_id: str = Field(..., description="ID of the room type")
    floor: Optional[str] = None
    status: RoomStatus = "available"
    notes: Optional[str] = None


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    room_number: Optional[str] = None
    room_type_id: Optional[str] = None
    floor: Optional[str] = None
    notes: Optional[str] = None


class RoomStatusUpdate(BaseModel):
    """Housekeeping sets a room status directly"""
    status: RoomStatus
    notes: Optional[str] = None
    recorded_by: Optional[str] = None


class RoomResponse(RoomBase):
    id: str = Field(alias="_id")
    created_at: datetime
    updated_at: datetime

    class Config:
        populate_by_name = True
