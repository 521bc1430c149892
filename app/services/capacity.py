"""
Capacity Validator – admission check of a guest count against the rooms or
room-type units selected for a stay.
"""
from typing import Any, Dict, List, Optional, Tuple

from app.services.exceptions import CapacityConfigurationError, CapacityError, ValidationError

# (label, capacity per unit, units)
CapacityUnit = Tuple[str, Optional[int], int]


def non_negative(value: Any) -> int:
    """Head count from loose input: negatives and non-numbers count as 0"""
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def guest_count(adults: Any, children: Any) -> int:
    return non_negative(adults) + non_negative(children)


def unit_capacity(room_type: Dict) -> Optional[int]:
    """Guests one unit of a room type holds: max occupancy, else base occupancy"""
    for key in ("max_occupancy", "base_occupancy"):
        value = room_type.get(key)
        if value is not None:
            try:
                return int(value)
            except (TypeError, ValueError):
                return None
    return None


def validate_capacity(guests: int, units: List[CapacityUnit], selection: str) -> int:
    """
    Ensure the selected units hold `guests`. Returns the total capacity.
    """
    if guests < 1:
        raise ValidationError("At least one guest (adults + children) is required.")
    total = 0
    for label, capacity, quantity in units:
        if capacity is None or capacity <= 0:
            raise CapacityConfigurationError(label, capacity)
        total += capacity * max(0, quantity)
    if total < guests:
        raise CapacityError(selection, guests, total)
    return total


def room_units(rooms: List[Dict], room_types: Dict[str, Dict]) -> List[CapacityUnit]:
    """One capacity unit per concrete room, sized by its room type"""
    units = []
    for room in rooms:
        room_type = room_types.get(str(room.get("room_type_id"))) or {}
        units.append((f"Room {room.get('room_number')}", unit_capacity(room_type), 1))
    return units


def request_units(requests: List[Dict], room_types: Dict[str, Dict]) -> List[CapacityUnit]:
    """Capacity units for (room_type_id, quantity) requests"""
    units = []
    for request in requests:
        room_type = room_types.get(str(request.get("room_type_id"))) or {}
        label = f"Room type {room_type.get('name') or request.get('room_type_id')}"
        units.append((label, unit_capacity(room_type), int(request.get("quantity") or 0)))
    return units


def describe_selection(units: List[CapacityUnit]) -> str:
    return ", ".join(
        label if quantity == 1 else f"{quantity} x {label}" for label, _, quantity in units
    ) or "the selected rooms"
