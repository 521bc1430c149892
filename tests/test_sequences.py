import asyncio

from app.config.database import Collections, db_config
from app.services.sequence_service import format_number, next_confirmation_number, next_value


async def test_fresh_counter_starts_at_floor():
    assert await next_value("demo", floor=500) == 500
    assert await next_value("demo", floor=500) == 501


async def test_floor_never_lowers_an_existing_counter():
    await db_config.get_collection(Collections.SEQUENCES).insert_one({"_id": "demo", "value": 41})
    assert await next_value("demo", floor=10) == 42


async def test_raised_floor_skips_ahead():
    await next_value("demo", floor=1)
    assert await next_value("demo", floor=100) == 100


async def test_concurrent_callers_get_a_contiguous_run():
    await db_config.get_collection(Collections.SEQUENCES).insert_one({"_id": "demo", "value": 9})
    values = await asyncio.gather(*(next_value("demo") for _ in range(25)))
    assert sorted(values) == list(range(10, 35))


async def test_counters_are_independent():
    assert await next_value("a") == 1
    assert await next_value("b") == 1
    assert await next_value("a") == 2


def test_format_number_pads():
    assert format_number("INV-", 7, width=4) == "INV-0007"
    assert format_number("X", 123456, width=3) == "X123456"


async def test_confirmation_number_format():
    assert await next_confirmation_number() == "RES-001000"
