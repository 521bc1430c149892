"""
Room status changes and the housekeeping log that records them
"""
import logging
from typing import Dict, Iterable, List, Optional

from app.config.database import Collections, db_config
from app.database.db_operations import db_ops, session_kwargs, to_object_id
from app.services import catalog
from app.utils.helpers import serialize_docs, utcnow

logger = logging.getLogger(__name__)

ROOM_STATUSES = ["available", "occupied", "out_of_order", "in_cleaning"]


async def log_room_status(room_ids: Iterable[str], status: str, notes: Optional[str],
                          recorded_by: Optional[str], session=None) -> None:
    now = utcnow()
    entries = [
        {"room_id": str(room_id), "status": status, "notes": notes, "recorded_by": recorded_by, "recorded_at": now}
        for room_id in room_ids
    ]
    if entries:
        coll = db_config.get_collection(Collections.HOUSEKEEPING_LOGS)
        await coll.insert_many(entries, **session_kwargs(session))


async def set_rooms_status(room_ids: List[str], status: str, notes: Optional[str] = None,
                           recorded_by: Optional[str] = None, session=None) -> int:
    """Set the status of several rooms and append one log entry per room"""
    if not room_ids:
        return 0
    oids = [to_object_id(r) for r in room_ids]
    changed = await db_ops.update_many(Collections.ROOMS, {"_id": {"$in": oids}}, {"status": status}, session=session)
    await log_room_status(room_ids, status, notes, recorded_by, session)
    logger.info("Rooms %s set to %s", ", ".join(room_ids), status)
    return changed


async def set_room_status(room_id: str, status: str, notes: Optional[str] = None,
                          recorded_by: Optional[str] = None) -> Dict:
    """Housekeeping-driven status change of a single room"""
    room = await catalog.get_room(room_id)
    await set_rooms_status([str(room["_id"])], status, notes, recorded_by)
    return await catalog.get_room(room_id)


async def list_logs(room_id: Optional[str] = None, limit: int = 100) -> List[Dict]:
    query = {"room_id": room_id} if room_id else {}
    docs = await db_ops.get_all(
        Collections.HOUSEKEEPING_LOGS, query, limit=limit, sort=[("recorded_at", -1), ("_id", -1)]
    )
    return serialize_docs(docs)
