"""
Catalog lookups for rooms, room types, rate plans, policies, articles and guests
as the reservation and billing services see them.

Every getter raises when the document does not exist. Callers pick the error
class: a missing top-level resource is a NotFoundError, while a dangling
reference inside a reservation payload is reported as a ConflictError.
"""
from typing import Dict, Iterable, List, Optional, Type

from app.config.database import Collections
from app.database.db_operations import db_ops, to_object_id
from app.services.exceptions import NotFoundError, PMSError


async def _require(collection: str, doc_id: Optional[str], label: str,
                   error: Type[PMSError] = NotFoundError, session=None) -> Dict:
    doc = await db_ops.get_by_id(collection, doc_id, session=session) if doc_id else None
    if not doc:
        raise error(f"{label} {doc_id} not found.")
    return doc


async def _require_many(collection: str, doc_ids: Iterable[str], label: str,
                        error: Type[PMSError] = NotFoundError, session=None) -> Dict[str, Dict]:
    wanted = [str(i) for i in dict.fromkeys(doc_ids)]
    oids = [to_object_id(i) for i in wanted]
    docs = await db_ops.get_all(
        collection, {"_id": {"$in": [o for o in oids if o is not None]}}, limit=len(wanted) or 1, session=session
    ) if wanted else []
    found = {str(d["_id"]): d for d in docs}
    for doc_id in wanted:
        if doc_id not in found:
            raise error(f"{label} {doc_id} not found.")
    return found


async def get_room(room_id: str, error: Type[PMSError] = NotFoundError, session=None) -> Dict:
    return await _require(Collections.ROOMS, room_id, "Room", error, session)


async def get_rooms(room_ids: Iterable[str], error: Type[PMSError] = NotFoundError, session=None) -> Dict[str, Dict]:
    return await _require_many(Collections.ROOMS, room_ids, "Room", error, session)


async def get_room_type(room_type_id: str, error: Type[PMSError] = NotFoundError, session=None) -> Dict:
    return await _require(Collections.ROOM_TYPES, room_type_id, "Room type", error, session)


async def get_room_types(room_type_ids: Iterable[str], error: Type[PMSError] = NotFoundError,
                         session=None) -> Dict[str, Dict]:
    return await _require_many(Collections.ROOM_TYPES, room_type_ids, "Room type", error, session)


async def get_rate_plan(rate_plan_id: str, error: Type[PMSError] = NotFoundError, session=None) -> Dict:
    return await _require(Collections.RATE_PLANS, rate_plan_id, "Rate plan", error, session)


async def get_cancellation_policy(policy_id: str, error: Type[PMSError] = NotFoundError, session=None) -> Dict:
    return await _require(Collections.CANCELLATION_POLICIES, policy_id, "Cancellation policy", error, session)


async def get_article(article_id: str, error: Type[PMSError] = NotFoundError, session=None) -> Dict:
    return await _require(Collections.ARTICLES, article_id, "Article", error, session)


async def get_articles(article_ids: Iterable[str], error: Type[PMSError] = NotFoundError,
                       session=None) -> Dict[str, Dict]:
    return await _require_many(Collections.ARTICLES, article_ids, "Article", error, session)


async def get_guest(guest_id: str, error: Type[PMSError] = NotFoundError, session=None) -> Dict:
    return await _require(Collections.GUESTS, guest_id, "Guest", error, session)


async def room_types_for_rooms(rooms: List[Dict], error: Type[PMSError] = NotFoundError) -> Dict[str, Dict]:
    """Room types referenced by the given room documents, keyed by id"""
    return await get_room_types([r.get("room_type_id") for r in rooms], error=error)
