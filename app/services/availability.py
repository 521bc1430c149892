"""
Room Availability Checker – half-open [check_in, check_out) overlap test
against every reservation that still holds the room.

Two requests for the same room could both pass the check before either
writes. Writers therefore take a short lease on each room (`room_locks`,
keyed by room id) before checking and hold it until their write commits.
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from pymongo.errors import DuplicateKeyError

from app.config.database import Collections, db_config
from app.config.settings import settings
from app.database.db_operations import session_kwargs, to_object_id
from app.services.exceptions import ConflictError, RoomUnavailableError
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

# Reservations in these states no longer hold their rooms
RELEASED_STATUSES = ["cancelled", "no_show"]


def overlaps(existing_in: date, existing_out: date, new_in: date, new_out: date) -> bool:
    return not (existing_out <= new_in or existing_in >= new_out)


async def find_conflicts(room_id: str, check_in: date, check_out: date,
                         exclude_reservation_id: Optional[str] = None, session=None) -> List[Dict]:
    """Reservations holding `room_id` on any night of [check_in, check_out)"""
    query = {
        "rooms.room_id": str(room_id),
        "status": {"$nin": RELEASED_STATUSES},
        # NOT (existing_out <= new_in OR existing_in >= new_out)
        "check_out_date": {"$gt": check_in.isoformat()},
        "check_in_date": {"$lt": check_out.isoformat()},
    }
    if exclude_reservation_id:
        query["_id"] = {"$ne": to_object_id(exclude_reservation_id)}
    coll = db_config.get_collection(Collections.RESERVATIONS)
    return await coll.find(query, **session_kwargs(session)).to_list(length=None)


async def ensure_room_available(room: Dict, check_in: date, check_out: date,
                                exclude_reservation_id: Optional[str] = None, session=None) -> None:
    conflicts = await find_conflicts(str(room["_id"]), check_in, check_out, exclude_reservation_id, session)
    if conflicts:
        label = room.get("room_number") or str(room["_id"])
        logger.warning(
            "Room %s unavailable %s..%s (held by %s)",
            label, check_in, check_out, ", ".join(str(c.get("confirmation_number")) for c in conflicts),
        )
        raise RoomUnavailableError(label)


async def _room_label(room_id: str) -> str:
    room = await db_config.get_collection(Collections.ROOMS).find_one({"_id": to_object_id(room_id)})
    return (room or {}).get("room_number") or room_id


async def _acquire(coll, room_id: str, owner: str, deadline: float) -> None:
    loop = asyncio.get_running_loop()
    while True:
        now = utcnow()
        lease = {"_id": room_id, "owner": owner, "expires_at": now + timedelta(seconds=settings.ROOM_LOCK_TTL_SECONDS)}
        try:
            await coll.insert_one(lease)
            return
        except DuplicateKeyError:
            pass
        # Clear a lease whose holder died without releasing it
        stale = await coll.delete_one({"_id": room_id, "expires_at": {"$lte": now}})
        if stale.deleted_count:
            continue
        if loop.time() >= deadline:
            label = await _room_label(room_id)
            logger.warning("Gave up waiting for the booking lease on room %s", label)
            raise ConflictError(f"Room {label} is being booked by another request; please retry.")
        await asyncio.sleep(settings.ROOM_LOCK_POLL_SECONDS)


@asynccontextmanager
async def room_locks(room_ids: Iterable[str], wait: Optional[float] = None):
    """
    Hold a booking lease on every room in `room_ids` for the duration of the
    block. A room leased by another writer is polled until it frees up or
    `wait` seconds (default ROOM_LOCK_WAIT_SECONDS) pass. Rooms are locked in
    sorted order so overlapping callers never wait on each other in a cycle.
    """
    owner = uuid.uuid4().hex
    coll = db_config.get_collection(Collections.ROOM_LOCKS)
    wait = settings.ROOM_LOCK_WAIT_SECONDS if wait is None else wait
    deadline = asyncio.get_running_loop().time() + wait
    acquired = []
    try:
        for room_id in sorted({str(r) for r in room_ids}):
            await _acquire(coll, room_id, owner, deadline)
            acquired.append(room_id)
        yield owner
    finally:
        if acquired:
            await coll.delete_many({"_id": {"$in": acquired}, "owner": owner})
