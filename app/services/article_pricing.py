"""
Article Pricing Engine – billable quantity of add-on services.

    per_room_per_day     rooms x nights
    per_person_per_day   guests x nights
    per_day              nights
    per_person           guests
    per_stay (default)   1

The base quantity is scaled by the selection's multiplier and floored at 0.
"""
import logging
from typing import Any, Dict, List

from app.models.article import ChargeScheme
from app.services import catalog
from app.services.exceptions import ConflictError, ValidationError
from app.utils.helpers import money

logger = logging.getLogger(__name__)


def _count(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def billable_quantity(charge_scheme: Any, nights: int, guests: int, rooms: int, multiplier: int = 1) -> int:
    nights, guests, rooms = _count(nights), _count(guests), _count(rooms)
    try:
        scheme = ChargeScheme(charge_scheme)
    except ValueError:
        scheme = ChargeScheme.PER_STAY

    if scheme == ChargeScheme.PER_ROOM_PER_DAY:
        base = rooms * nights
    elif scheme == ChargeScheme.PER_PERSON_PER_DAY:
        base = guests * nights
    elif scheme == ChargeScheme.PER_DAY:
        base = nights
    elif scheme == ChargeScheme.PER_PERSON:
        base = guests
    else:
        base = 1
    return max(0, base * _count(multiplier))


def price_line(row: Dict, nights: int, guests: int, rooms: int) -> Dict:
    """Re-derive quantity, net total and tax of a reservation article row"""
    priced = dict(row)
    multiplier = row.get("multiplier", 1)
    if multiplier is None or multiplier <= 0:
        quantity = 0
    else:
        quantity = billable_quantity(row.get("charge_scheme"), nights, guests, rooms, multiplier)
    unit_price = float(row.get("unit_price") or 0)
    tax_rate = float(row.get("tax_rate") or 0)
    total = money(quantity * unit_price)
    priced["quantity"] = quantity
    priced["total_amount"] = total
    priced["tax_amount"] = money(total * tax_rate / 100)
    return priced


def recalculate_articles(rows: List[Dict], nights: int, guests: int, rooms: int) -> List[Dict]:
    """
    Re-price existing reservation articles after a change of dates, guests or
    rooms, using each row's stored scheme, multiplier and unit price. Rows
    with a multiplier <= 0 are kept with a zero quantity.
    """
    return [price_line(row, nights, guests, rooms) for row in rows or []]


async def build_article_rows(selections: List[Dict], nights: int, guests: int, rooms: int) -> List[Dict]:
    """
    Turn an explicit {article_id, multiplier} payload into priced reservation
    article rows. Selections with multiplier 0 are dropped.
    """
    selections = selections or []
    for selection in selections:
        if not selection.get("article_id"):
            raise ValidationError("article_id is required for each article selection.")
        multiplier = selection.get("multiplier", 1)
        if multiplier is None:
            multiplier = 1
        if not isinstance(multiplier, (int, float)) or multiplier < 0:
            raise ValidationError(f"Invalid multiplier for article {selection.get('article_id')}.")

    articles = await catalog.get_articles([s["article_id"] for s in selections], error=ConflictError)

    rows = []
    for selection in selections:
        multiplier = selection.get("multiplier", 1)
        multiplier = 1 if multiplier is None else int(multiplier)
        if multiplier == 0:
            continue
        article = articles[str(selection["article_id"])]
        if not article.get("is_active", True):
            raise ConflictError(f"Article {article.get('name')} is no longer available.")
        row = {
            "article_id": str(article["_id"]),
            "description": article.get("name"),
            "charge_scheme": article.get("charge_scheme") or ChargeScheme.PER_STAY.value,
            "multiplier": multiplier,
            "unit_price": float(article.get("unit_price") or 0),
            "tax_rate": float(article.get("tax_rate") or 0),
        }
        rows.append(price_line(row, nights, guests, rooms))
    logger.debug("Priced %d article line(s) for %d night(s)", len(rows), nights)
    return rows
