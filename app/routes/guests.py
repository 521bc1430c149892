import re
from fastapi import APIRouter, HTTPException, status
from typing import List
from app.config.database import Collections
from app.database.db_operations import db_ops
from app.utils.helpers import serialize_doc, serialize_docs
from app.models.guest import CompanyCreate, CompanyUpdate, GuestCreate, GuestUpdate, GuestResponse

router = APIRouter(prefix="/guests", tags=["Guests"])
companies_router = APIRouter(prefix="/companies", tags=["Companies"])


async def _check_company(company_id: str):
    if company_id and not await db_ops.get_by_id(Collections.COMPANIES, company_id):
        raise HTTPException(status_code=404, detail="Company not found")


# ─── Guests ────────────────────────────────────────────────────────────────────

@router.post("/", response_model=GuestResponse, status_code=status.HTTP_201_CREATED)
async def create_guest(guest: GuestCreate):
    await _check_company(guest.company_id)
    created = await db_ops.create(Collections.GUESTS, guest.model_dump())
    return serialize_doc(created)


@router.get("/", response_model=List[GuestResponse])
async def get_guests(search: str = None, skip: int = 0, limit: int = 100):
    """List guests, optionally filtered by a name or email fragment"""
    filter_query = {}
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        filter_query["$or"] = [{"first_name": pattern}, {"last_name": pattern}, {"email": pattern}]
    guests = await db_ops.get_all(
        Collections.GUESTS, filter_query, skip=skip, limit=limit, sort=[("last_name", 1), ("first_name", 1)]
    )
    return serialize_docs(guests)


@router.get("/{guest_id}", response_model=GuestResponse)
async def get_guest(guest_id: str):
    guest = await db_ops.get_by_id(Collections.GUESTS, guest_id)
    if not guest:
        raise HTTPException(status_code=404, detail="Guest not found")
    return serialize_doc(guest)


@router.put("/{guest_id}", response_model=GuestResponse)
async def update_guest(guest_id: str, guest_update: GuestUpdate):
    update_data = guest_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    await _check_company(update_data.get("company_id"))
    updated = await db_ops.update(Collections.GUESTS, guest_id, update_data)
    if not updated:
        raise HTTPException(status_code=404, detail="Guest not found")
    return serialize_doc(updated)


# ─── Companies ─────────────────────────────────────────────────────────────────

@companies_router.post("/", status_code=status.HTTP_201_CREATED)
async def create_company(company: CompanyCreate):
    created = await db_ops.create(Collections.COMPANIES, company.model_dump())
    return serialize_doc(created)


@companies_router.get("/")
async def get_companies():
    companies = await db_ops.get_all(Collections.COMPANIES, limit=1000, sort=[("name", 1)])
    return serialize_docs(companies)


@companies_router.get("/{company_id}")
async def get_company(company_id: str):
    company = await db_ops.get_by_id(Collections.COMPANIES, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return serialize_doc(company)


@companies_router.put("/{company_id}")
async def update_company(company_id: str, company_update: CompanyUpdate):
    update_data = company_update.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = await db_ops.update(Collections.COMPANIES, company_id, update_data)
    if not updated:
        raise HTTPException(status_code=404, detail="Company not found")
    return serialize_doc(updated)
