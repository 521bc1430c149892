from fastapi import APIRouter, HTTPException, status
from typing import List
from app.config.database import Collections
from app.database.db_operations import db_ops
from app.utils.helpers import serialize_doc, serialize_docs
from app.models.rate_plan import (
    CancellationPolicyCreate, CancellationPolicyUpdate,
    RatePlanCreate, RatePlanUpdate, RatePlanResponse,
    RateCalendarCreate, RateCalendarRuleCreate, RateCalendarRuleUpdate,
    RateCalendarResolution,
)
from app.services.rate_calendar import resolve_rate_calendar

router = APIRouter(prefix="/rate-plans", tags=["Rate Plans"])
policies_router = APIRouter(prefix="/cancellation-policies", tags=["Cancellation Policies"])


async def _check_policy(policy_id: str):
    if policy_id and not await db_ops.get_by_id(Collections.CANCELLATION_POLICIES, policy_id):
        raise HTTPException(status_code=404, detail="Cancellation policy not found")


async def _get_calendar(rate_plan_id: str, calendar_id: str) -> dict:
    calendar = await db_ops.get_by_id(Collections.RATE_CALENDARS, calendar_id)
    if not calendar or calendar.get("rate_plan_id") != rate_plan_id:
        raise HTTPException(status_code=404, detail="Rate calendar not found")
    return calendar


# ─── Cancellation policies ─────────────────────────────────────────────────────

@policies_router.post("/", status_code=status.HTTP_201_CREATED)
async def create_cancellation_policy(policy: CancellationPolicyCreate):
    created = await db_ops.create(Collections.CANCELLATION_POLICIES, policy.model_dump())
    return serialize_doc(created)


@policies_router.get("/")
async def get_cancellation_policies():
    policies = await db_ops.get_all(Collections.CANCELLATION_POLICIES, sort=[("name", 1)])
    return serialize_docs(policies)


@policies_router.get("/{policy_id}")
async def get_cancellation_policy(policy_id: str):
    policy = await db_ops.get_by_id(Collections.CANCELLATION_POLICIES, policy_id)
    if not policy:
        raise HTTPException(status_code=404, detail="Cancellation policy not found")
    return serialize_doc(policy)


@policies_router.put("/{policy_id}")
async def update_cancellation_policy(policy_id: str, policy_update: CancellationPolicyUpdate):
    update_data = policy_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = await db_ops.update(Collections.CANCELLATION_POLICIES, policy_id, update_data)
    if not updated:
        raise HTTPException(status_code=404, detail="Cancellation policy not found")
    return serialize_doc(updated)


# ─── Rate plans ────────────────────────────────────────────────────────────────

@router.post("/", response_model=RatePlanResponse, status_code=status.HTTP_201_CREATED)
async def create_rate_plan(rate_plan: RatePlanCreate):
    await _check_policy(rate_plan.cancellation_policy_id)
    created = await db_ops.create(Collections.RATE_PLANS, rate_plan.model_dump())
    return serialize_doc(created)


@router.get("/", response_model=List[RatePlanResponse])
async def get_rate_plans():
    rate_plans = await db_ops.get_all(Collections.RATE_PLANS, sort=[("name", 1)])
    return serialize_docs(rate_plans)


@router.get("/{rate_plan_id}", response_model=RatePlanResponse)
async def get_rate_plan(rate_plan_id: str):
    rate_plan = await db_ops.get_by_id(Collections.RATE_PLANS, rate_plan_id)
    if not rate_plan:
        raise HTTPException(status_code=404, detail="Rate plan not found")
    return serialize_doc(rate_plan)


@router.put("/{rate_plan_id}", response_model=RatePlanResponse)
async def update_rate_plan(rate_plan_id: str, rate_plan_update: RatePlanUpdate):
    update_data = rate_plan_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    await _check_policy(update_data.get("cancellation_policy_id"))
    if update_data.get("currency"):
        update_data["currency"] = update_data["currency"].upper()
    updated = await db_ops.update(Collections.RATE_PLANS, rate_plan_id, update_data)
    if not updated:
        raise HTTPException(status_code=404, detail="Rate plan not found")
    return serialize_doc(updated)


@router.get("/{rate_plan_id}/resolve", response_model=RateCalendarResolution)
async def resolve_rates(rate_plan_id: str, start: str, end: str):
    """Per-day prices and restrictions of the plan over [start, end]"""
    return await resolve_rate_calendar(rate_plan_id, start, end)


# ─── Rate calendars and rules ──────────────────────────────────────────────────

@router.post("/{rate_plan_id}/calendars", status_code=status.HTTP_201_CREATED)
async def create_rate_calendar(rate_plan_id: str, calendar: RateCalendarCreate):
    if not await db_ops.get_by_id(Collections.RATE_PLANS, rate_plan_id):
        raise HTTPException(status_code=404, detail="Rate plan not found")
    calendar_dict = calendar.model_dump()
    calendar_dict["rate_plan_id"] = rate_plan_id
    created = await db_ops.create(Collections.RATE_CALENDARS, calendar_dict)
    return serialize_doc(created)


@router.get("/{rate_plan_id}/calendars")
async def get_rate_calendars(rate_plan_id: str):
    calendars = await db_ops.get_all(Collections.RATE_CALENDARS, {"rate_plan_id": rate_plan_id})
    for calendar in calendars:
        calendar["rules"] = serialize_docs(await db_ops.get_all(
            Collections.RATE_CALENDAR_RULES,
            {"rate_calendar_id": str(calendar["_id"])},
            limit=1000,
            sort=[("start_date", 1)],
        ))
    return serialize_docs(calendars)


@router.post("/{rate_plan_id}/calendars/{calendar_id}/rules", status_code=status.HTTP_201_CREATED)
async def create_rate_rule(rate_plan_id: str, calendar_id: str, rule: RateCalendarRuleCreate):
    await _get_calendar(rate_plan_id, calendar_id)
    await _check_policy(rule.cancellation_policy_id)
    rule_dict = rule.model_dump(mode='json')
    rule_dict["rate_calendar_id"] = calendar_id
    created = await db_ops.create(Collections.RATE_CALENDAR_RULES, rule_dict)
    return serialize_doc(created)


@router.put("/{rate_plan_id}/calendars/{calendar_id}/rules/{rule_id}")
async def update_rate_rule(rate_plan_id: str, calendar_id: str, rule_id: str, rule_update: RateCalendarRuleUpdate):
    await _get_calendar(rate_plan_id, calendar_id)
    existing = await db_ops.get_by_id(Collections.RATE_CALENDAR_RULES, rule_id)
    if not existing or existing.get("rate_calendar_id") != calendar_id:
        raise HTTPException(status_code=404, detail="Rate rule not found")

    update_data = rule_update.model_dump(mode='json', exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    start = update_data.get("start_date", existing.get("start_date"))
    end = update_data.get("end_date", existing.get("end_date"))
    if start and end and end < start:
        raise HTTPException(status_code=422, detail="end_date must be on or after start_date")
    await _check_policy(update_data.get("cancellation_policy_id"))

    updated = await db_ops.update(Collections.RATE_CALENDAR_RULES, rule_id, update_data)
    return serialize_doc(updated)


@router.delete("/{rate_plan_id}/calendars/{calendar_id}/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rate_rule(rate_plan_id: str, calendar_id: str, rule_id: str):
    await _get_calendar(rate_plan_id, calendar_id)
    existing = await db_ops.get_by_id(Collections.RATE_CALENDAR_RULES, rule_id)
    if not existing or existing.get("rate_calendar_id") != calendar_id:
        raise HTTPException(status_code=404, detail="Rate rule not found")
    await db_ops.delete(Collections.RATE_CALENDAR_RULES, rule_id)
