"""
Main FastAPI application
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import json
import logging
import time

from app.config.database import db_config
from app.config.settings import settings
from app.services.exceptions import PMSError

from app.routes import (
    rooms,
    rate_plans,
    articles,
    guests,
    reservations,
    invoices,
    reports,
    guest_portal,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events"""
    # Startup
    await db_config.connect_db()
    await db_config.ensure_indexes()
    logger.info("%s v%s started", settings.APP_NAME, settings.VERSION)
    yield
    # Shutdown
    await db_config.close_db()
    logger.info("Application shutdown")

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PMSError)
async def pms_exception_handler(request: Request, exc: PMSError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Round-trip through json with default=str to handle non-serializable objects (e.g. ValueError)
    safe_errors = json.loads(json.dumps(exc.errors(), default=str))
    logger.warning("422 validation error on %s %s: %s", request.method, request.url.path, safe_errors)
    if exc.body is not None:
        logger.debug("Body sent: %s", json.dumps(exc.body, default=str))
    return JSONResponse(status_code=422, content={"detail": safe_errors})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info("%s %s - %s (%.2fs)", request.method, request.url.path, response.status_code, duration)
    return response

# Catalog
app.include_router(rooms.room_types_router, prefix="/api")
app.include_router(rooms.router, prefix="/api")
app.include_router(rooms.housekeeping_router, prefix="/api")
app.include_router(rate_plans.router, prefix="/api")
app.include_router(rate_plans.policies_router, prefix="/api")
app.include_router(articles.router, prefix="/api")
app.include_router(guests.router, prefix="/api")
app.include_router(guests.companies_router, prefix="/api")

# Reservations and billing
app.include_router(reservations.router, prefix="/api")
app.include_router(invoices.router, prefix="/api")
app.include_router(invoices.payments_router, prefix="/api")
app.include_router(reports.router, prefix="/api")

# Public
app.include_router(guest_portal.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": settings.APP_NAME,
        "version": settings.VERSION,
        "status": "running"
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
