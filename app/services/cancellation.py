"""
Penalty a guest owes when cancelling on a given date
"""
import logging
from typing import Any, Dict, Optional

from app.services import catalog
from app.services.exceptions import ValidationError
from app.services.rate_calendar import resolve_rate_calendar
from app.services.reservation_service import get_reservation_document
from app.utils.helpers import money, nights_between, normalize_currency, parse_date, today

logger = logging.getLogger(__name__)


def calculate_cancellation_penalty(policy: Optional[Dict], days_before_arrival: int, stay_total: float,
                                   nights: int, first_night_rate: float) -> float:
    """
    Penalty under `policy`: nothing while the notice is at least
    free_until_days, otherwise

        percent   penalty_value % of the stay total
        fixed     penalty_value
        nights    penalty_value x first-night rate
    """
    if not policy:
        return 0.0
    if days_before_arrival >= int(policy.get("free_until_days") or 0):
        return 0.0
    value = float(policy.get("penalty_value") or 0)
    penalty_type = policy.get("penalty_type") or "percent"
    if penalty_type == "fixed":
        penalty = value
    elif penalty_type == "nights":
        penalty = min(value, nights) * first_night_rate if nights else 0.0
    else:
        penalty = stay_total * value / 100
    return money(max(0.0, penalty))


def _stay_total(reservation: Dict, nights: int) -> float:
    if reservation.get("total_amount") is not None:
        return float(reservation["total_amount"])
    rooms = reservation.get("rooms") or []
    return sum(float(r.get("nightly_rate") or 0) for r in rooms) * nights


async def quote_cancellation(reservation_id: str, on_date: Any = None) -> Dict:
    reservation = await get_reservation_document(reservation_id)
    check_in = parse_date(reservation.get("check_in_date"))
    check_out = parse_date(reservation.get("check_out_date"))
    cancel_on = today() if on_date in (None, "") else parse_date(on_date)
    if cancel_on is None:
        raise ValidationError("on_date must be a valid date (YYYY-MM-DD).")

    nights = nights_between(check_in, check_out)
    rooms = reservation.get("rooms") or []
    first_night = float(rooms[0].get("nightly_rate") or 0) if rooms else 0.0
    currency = normalize_currency(reservation.get("currency"))
    policy_id = None

    rate_plan_id = reservation.get("rate_plan_id")
    if rate_plan_id:
        # the arrival day's rule overrides the plan's own policy
        arrival = await resolve_rate_calendar(rate_plan_id, check_in, check_in)
        day = arrival["days"][0]
        policy_id = day.get("cancellation_policy_id")
        if not rooms:
            first_night = float(day["price"])

    policy = await catalog.get_cancellation_policy(policy_id) if policy_id else None
    days_before = (check_in - cancel_on).days
    penalty = calculate_cancellation_penalty(
        policy, days_before, _stay_total(reservation, nights), nights, first_night * max(1, len(rooms))
    )
    logger.info(
        "Cancellation quote for %s on %s: %s %s", reservation.get("confirmation_number"), cancel_on, penalty, currency
    )
    return {
        "reservation_id": str(reservation["_id"]),
        "cancellation_policy_id": policy_id,
        "days_before_arrival": days_before,
        "free_cancellation": penalty == 0,
        "penalty_amount": penalty,
        "currency": currency,
    }
