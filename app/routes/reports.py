from fastapi import APIRouter
from app.services import report_service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/occupancy")
async def get_occupancy(start: str = None, end: str = None):
    """Occupied rooms per night (default: today)"""
    return await report_service.occupancy_report(start, end)


@router.get("/revenue")
async def get_revenue(start: str = None, end: str = None):
    """Invoiced and collected amounts (default: current month)"""
    return await report_service.revenue_report(start, end)


@router.get("/forecast")
async def get_forecast(start: str = None, end: str = None):
    """Expected arrivals (default: next 30 days)"""
    return await report_service.forecast_report(start, end)
