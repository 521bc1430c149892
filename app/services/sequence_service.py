"""
Sequence Generator – monotonic, prefixed, zero-padded document numbers.

Each counter is one document in the `sequences` collection:
    {"_id": "<counter name>", "value": <last issued int>}

Issuing a value is two single-document atomic writes:
    1. raise the stored value to at least floor - 1 ($max, upserted)
    2. increment it by one and read back the result ($inc)
so concurrent callers serialize on the counter document and the issued
values form a contiguous run starting at max(floor, last + 1). A value is
never issued twice, including across restarts.
"""
import logging

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.config.database import Collections, db_config
from app.config.settings import settings
from app.services.exceptions import InternalError

logger = logging.getLogger(__name__)


class SequenceName:
    CONFIRMATION = "confirmation_number"
    INVOICE = "invoice_number"
    CORRECTION = "correction_number"


async def next_value(name: str, floor: int = 1) -> int:
    """Lock-and-increment the named counter and return the issued value"""
    coll = db_config.get_collection(Collections.SEQUENCES)
    try:
        try:
            await coll.update_one({"_id": name}, {"$max": {"value": floor - 1}}, upsert=True)
        except DuplicateKeyError:
            # another caller created the counter first; retry as a plain update
            await coll.update_one({"_id": name}, {"$max": {"value": floor - 1}})
        doc = await coll.find_one_and_update(
            {"_id": name},
            {"$inc": {"value": 1}},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as exc:
        logger.error("Sequence %s could not be advanced: %s", name, exc)
        raise InternalError(f"Could not generate the next {name.replace('_', ' ')}.") from exc
    return int(doc["value"])


def format_number(prefix: str, value: int, width: int = None) -> str:
    width = settings.SEQUENCE_PADDING if width is None else width
    return f"{prefix}{value:0{width}d}"


async def next_confirmation_number() -> str:
    value = await next_value(SequenceName.CONFIRMATION, settings.CONFIRMATION_START)
    return format_number(settings.CONFIRMATION_PREFIX, value)


async def next_invoice_number() -> str:
    value = await next_value(SequenceName.INVOICE, settings.INVOICE_START)
    return format_number(settings.INVOICE_PREFIX, value)


async def next_correction_number() -> str:
    value = await next_value(SequenceName.CORRECTION, settings.CORRECTION_START)
    return format_number(settings.CORRECTION_PREFIX, value)
