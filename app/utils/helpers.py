"""
Helper utility functions
"""
from bson import ObjectId
from typing import Any, Dict, List, Optional
from datetime import date, datetime, timedelta, timezone
import pytz

from app.config.settings import settings

LOCAL_TZ = pytz.timezone(settings.TIMEZONE)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form MongoDB hands datetimes back in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """Current calendar date in the hotel's timezone"""
    return datetime.now(LOCAL_TZ).date()


def serialize_doc(doc: Dict) -> Dict:
    """Convert MongoDB document to JSON-serializable format"""
    if doc is None:
        return None

    if "_id" in doc and isinstance(doc["_id"], ObjectId):
        doc["_id"] = str(doc["_id"])

    # Convert any nested ObjectIds or datetimes
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            doc[key] = str(value)
        elif isinstance(value, datetime):
            if value.tzinfo is None:
                utc_dt = pytz.utc.localize(value)
                doc[key] = utc_dt.astimezone(LOCAL_TZ).isoformat()
            else:
                doc[key] = value.astimezone(LOCAL_TZ).isoformat()
        elif isinstance(value, list):
            doc[key] = [serialize_doc(item) if isinstance(item, dict) else item for item in value]
        elif isinstance(value, dict):
            doc[key] = serialize_doc(value)

    return doc


def serialize_docs(docs: List[Dict]) -> List[Dict]:
    """Convert list of MongoDB documents to JSON-serializable format"""
    return [serialize_doc(doc) for doc in docs]


def parse_date(value: Any) -> Optional[date]:
    """Accept a date, datetime or ISO 'YYYY-MM-DD' string; None when unparseable"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def iter_dates(start: date, end: date):
    """Yield every calendar day from start to end inclusive"""
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def nights_between(check_in: date, check_out: date) -> int:
    return max(0, (check_out - check_in).days)


def normalize_currency(value: Optional[str], default: Optional[str] = None) -> str:
    """Three-letter upper-case currency code, falling back to the default"""
    code = (value or "").strip().upper()
    if len(code) == 3 and code.isalpha():
        return code
    fallback = (default or settings.DEFAULT_CURRENCY).strip().upper()
    return fallback[:3]


def money(value: float) -> float:
    return round(float(value), 2)
