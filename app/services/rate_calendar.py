"""
Rate Calendar Resolver – turns a rate plan's overlapping calendar rules into
one price/restriction record per night.

Rules are applied in priority order and the first rule to claim a day keeps
it:
    1. rules with a weekday filter before rules without one
    2. most recently updated first (created_at, then id, break ties)
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from app.config.database import Collections, db_config
from app.services import catalog
from app.services.exceptions import ValidationError
from app.utils.helpers import iter_dates, normalize_currency, parse_date

logger = logging.getLogger(__name__)

# Monday-first display order; values follow the 0 = Sunday convention
WEEKDAY_ORDER = [1, 2, 3, 4, 5, 6, 0]
WEEKEND_DAYS = {0, 6}


# ─── weekday helpers ──────────────────────────────────────────────────────────

def normalize_weekdays(value: Any) -> List[int]:
    """
    Accept a list, a comma separated string or a single value and return the
    unique valid weekdays (0..6) in Monday-first order. Invalid entries are
    dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        raw = list(value)
    else:
        raw = [value]

    seen = set()
    for item in raw:
        if item is None or (isinstance(item, str) and not item.strip()):
            continue
        try:
            weekday = int(item)
        except (TypeError, ValueError):
            continue
        if 0 <= weekday <= 6:
            seen.add(weekday)
    return [weekday for weekday in WEEKDAY_ORDER if weekday in seen]


def calendar_weekday(day: date) -> int:
    """Weekday number with Sunday = 0 ... Saturday = 6"""
    return (day.weekday() + 1) % 7


# ─── resolution ───────────────────────────────────────────────────────────────

def _stamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            return datetime.min
    return datetime.min


def sort_rules(rules: Iterable[Dict]) -> List[Dict]:
    """Order rules by priority: weekday-filtered first, then newest update"""
    by_recency = sorted(
        rules,
        key=lambda r: (
            _stamp(r.get("updated_at") or r.get("created_at")),
            _stamp(r.get("created_at")),
            str(r.get("_id") or ""),
        ),
        reverse=True,
    )
    return sorted(by_recency, key=lambda r: 0 if normalize_weekdays(r.get("weekdays")) else 1)


def build_daily_rates(
    start: date,
    end: date,
    base_price: float,
    rules: Iterable[Dict],
    currency: Optional[str] = None,
    default_policy_id: Optional[str] = None,
) -> List[Dict]:
    """
    Resolve one record per day in [start, end]. Every day starts at the base
    price; a rule claims each day inside its range (and weekday filter) that
    no higher-priority rule claimed yet.
    """
    currency = normalize_currency(currency)
    daily: Dict[date, Dict] = {}
    for day in iter_dates(start, end):
        daily[day] = {
            "date": day.isoformat(),
            "price": float(base_price),
            "currency": currency,
            "is_weekend": calendar_weekday(day) in WEEKEND_DAYS,
            "closed_for_arrival": False,
            "closed_for_departure": False,
            "cancellation_policy_id": default_policy_id,
            "rule_id": None,
            "calendar_id": None,
        }

    for rule in sort_rules(rules):
        rule_start = parse_date(rule.get("start_date"))
        rule_end = parse_date(rule.get("end_date"))
        if rule_start is None or rule_end is None:
            continue
        weekdays = normalize_weekdays(rule.get("weekdays"))
        window_start = max(rule_start, start)
        window_end = min(rule_end, end)

        for day in iter_dates(window_start, window_end):
            entry = daily[day]
            if entry["rule_id"] is not None:
                continue
            if weekdays and calendar_weekday(day) not in weekdays:
                continue
            entry["rule_id"] = str(rule.get("_id") or rule.get("id") or "") or None
            entry["calendar_id"] = rule.get("rate_calendar_id")
            if rule.get("price") is not None:
                entry["price"] = float(rule["price"])
            if rule.get("cancellation_policy_id"):
                entry["cancellation_policy_id"] = rule["cancellation_policy_id"]
            entry["closed_for_arrival"] = bool(rule.get("closed_for_arrival"))
            entry["closed_for_departure"] = bool(rule.get("closed_for_departure"))

    return [daily[day] for day in sorted(daily)]


# ─── persistence-backed resolution ────────────────────────────────────────────

async def load_rules(rate_plan_id: str, start: date, end: date) -> List[Dict]:
    """Fetch the plan's rules whose range touches [start, end]"""
    calendars = await db_config.get_collection(Collections.RATE_CALENDARS).find(
        {"rate_plan_id": rate_plan_id}
    ).to_list(length=None)
    calendar_ids = [str(c["_id"]) for c in calendars]
    if not calendar_ids:
        return []
    rules = await db_config.get_collection(Collections.RATE_CALENDAR_RULES).find({
        "rate_calendar_id": {"$in": calendar_ids},
        "start_date": {"$lte": end.isoformat()},
        "end_date": {"$gte": start.isoformat()},
    }).to_list(length=None)
    return rules


async def resolve_rate_calendar(rate_plan_id: str, start: Any, end: Any) -> Dict:
    """Per-day price, weekend flag, restrictions and policy for a rate plan"""
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None or end_date is None:
        raise ValidationError("start and end must be valid dates (YYYY-MM-DD).")
    if end_date < start_date:
        raise ValidationError("end must be on or after start.")

    rate_plan = await catalog.get_rate_plan(rate_plan_id)
    rules = await load_rules(str(rate_plan["_id"]), start_date, end_date)
    base_price = float(rate_plan.get("base_price") or 0)
    currency = normalize_currency(rate_plan.get("currency"))
    days = build_daily_rates(
        start_date,
        end_date,
        base_price,
        rules,
        currency=currency,
        default_policy_id=rate_plan.get("cancellation_policy_id"),
    )
    logger.debug("Resolved %d day(s) for rate plan %s from %d rule(s)", len(days), rate_plan_id, len(rules))
    return {
        "rate_plan_id": str(rate_plan["_id"]),
        "base_price": base_price,
        "currency": currency,
        "days": days,
    }
