from fastapi import APIRouter, HTTPException, status
from typing import List
from app.config.database import Collections
from app.database.db_operations import db_ops
from app.utils.helpers import serialize_doc, serialize_docs
from app.models.room import (
    RoomTypeCreate, RoomTypeUpdate, RoomTypeResponse,
    RoomCreate, RoomUpdate, RoomResponse, RoomStatusUpdate,
)
from app.services import housekeeping

room_types_router = APIRouter(prefix="/room-types", tags=["Room Types"])
router = APIRouter(prefix="/rooms", tags=["Rooms"])
housekeeping_router = APIRouter(prefix="/housekeeping", tags=["Housekeeping"])


# ─── Room types ────────────────────────────────────────────────────────────────

@room_types_router.post("/", response_model=RoomTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_room_type(room_type: RoomTypeCreate):
    created = await db_ops.create(Collections.ROOM_TYPES, room_type.model_dump())
    return serialize_doc(created)


@room_types_router.get("/", response_model=List[RoomTypeResponse])
async def get_room_types():
    room_types = await db_ops.get_all(Collections.ROOM_TYPES, sort=[("name", 1)])
    return serialize_docs(room_types)


@room_types_router.get("/{room_type_id}", response_model=RoomTypeResponse)
async def get_room_type(room_type_id: str):
    room_type = await db_ops.get_by_id(Collections.ROOM_TYPES, room_type_id)
    if not room_type:
        raise HTTPException(status_code=404, detail="Room type not found")
    return serialize_doc(room_type)


@room_types_router.put("/{room_type_id}", response_model=RoomTypeResponse)
async def update_room_type(room_type_id: str, room_type_update: RoomTypeUpdate):
    existing = await db_ops.get_by_id(Collections.ROOM_TYPES, room_type_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Room type not found")

    update_data = room_type_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    # occupancy bounds are checked against the merged document
    base = update_data.get("base_occupancy", existing.get("base_occupancy"))
    maximum = update_data.get("max_occupancy", existing.get("max_occupancy"))
    if base is not None and maximum is not None and maximum < base:
        raise HTTPException(status_code=422, detail="max_occupancy must be >= base_occupancy")
    if update_data.get("currency"):
        update_data["currency"] = update_data["currency"].upper()

    updated = await db_ops.update(Collections.ROOM_TYPES, room_type_id, update_data)
    return serialize_doc(updated)


@room_types_router.delete("/{room_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room_type(room_type_id: str):
    """Delete a room type that no room uses"""
    if await db_ops.count(Collections.ROOMS, {"room_type_id": room_type_id}):
        raise HTTPException(status_code=409, detail="Room type is still assigned to rooms")
    deleted = await db_ops.delete(Collections.ROOM_TYPES, room_type_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Room type not found")


# ─── Rooms ─────────────────────────────────────────────────────────────────────

@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(room: RoomCreate):
    """Create a room; room numbers are unique"""
    room_type = await db_ops.get_by_id(Collections.ROOM_TYPES, room.room_type_id)
    if not room_type:
        raise HTTPException(status_code=404, detail="Room type not found")

    existing = await db_ops.get_one(Collections.ROOMS, {"room_number": room.room_number})
    if existing:
        raise HTTPException(status_code=409, detail=f"Room number {room.room_number} already exists")

    created = await db_ops.create(Collections.ROOMS, room.model_dump())
    return serialize_doc(created)


@router.get("/", response_model=List[RoomResponse])
async def get_rooms(room_type_id: str = None, room_status: str = None):
    filter_query = {}
    if room_type_id:
        filter_query["room_type_id"] = room_type_id
    if room_status:
        filter_query["status"] = room_status
    rooms = await db_ops.get_all(Collections.ROOMS, filter_query, limit=1000)

    # Sort by room_number
    sorted_rooms = sorted(rooms, key=lambda r: r.get('room_number', ''))
    return serialize_docs(sorted_rooms)


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: str):
    room = await db_ops.get_by_id(Collections.ROOMS, room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return serialize_doc(room)


@router.put("/{room_id}", response_model=RoomResponse)
async def update_room(room_id: str, room_update: RoomUpdate):
    existing = await db_ops.get_by_id(Collections.ROOMS, room_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Room not found")

    update_data = room_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    if "room_type_id" in update_data:
        if not await db_ops.get_by_id(Collections.ROOM_TYPES, update_data["room_type_id"]):
            raise HTTPException(status_code=404, detail="Room type not found")
    if update_data.get("room_number") and update_data["room_number"] != existing.get("room_number"):
        if await db_ops.get_one(Collections.ROOMS, {"room_number": update_data["room_number"]}):
            raise HTTPException(status_code=409, detail=f"Room number {update_data['room_number']} already exists")

    updated = await db_ops.update(Collections.ROOMS, room_id, update_data)
    return serialize_doc(updated)


@router.patch("/{room_id}/status", response_model=RoomResponse)
async def set_room_status(room_id: str, body: RoomStatusUpdate):
    """Housekeeping status change; appends a housekeeping log entry"""
    room = await housekeeping.set_room_status(room_id, body.status, body.notes, body.recorded_by)
    return serialize_doc(room)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(room_id: str):
    deleted = await db_ops.delete(Collections.ROOMS, room_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Room not found")


# ─── Housekeeping log ──────────────────────────────────────────────────────────

@housekeeping_router.get("/logs")
async def get_housekeeping_logs(room_id: str = None, limit: int = 100):
    return await housekeeping.list_logs(room_id, limit=min(limit, 500))
