"""
Application settings and configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


class Settings:
    # Application
    APP_NAME = "Hotel PMS"
    VERSION = "1.0.0"
    DEBUG = os.getenv("DEBUG", "True") == "True"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    TIMEZONE = os.getenv("TIMEZONE", "Europe/Berlin")

    # CORS
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Billing
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "EUR")
    ROOM_NIGHT_TAX_RATE = _env_float("ROOM_NIGHT_TAX_RATE", 7.0)  # reduced VAT on lodging
    ARTICLE_DEFAULT_TAX_RATE = _env_float("ARTICLE_DEFAULT_TAX_RATE", 19.0)
    FALLBACK_NIGHTLY_RATE = _env_float("FALLBACK_NIGHTLY_RATE", 100.0)
    INVOICE_DUE_DAYS = _env_int("INVOICE_DUE_DAYS", 14)

    # Document number sequences
    CONFIRMATION_PREFIX = os.getenv("CONFIRMATION_PREFIX", "RES-")
    CONFIRMATION_START = _env_int("CONFIRMATION_START", 1000)
    INVOICE_PREFIX = os.getenv("INVOICE_PREFIX", "INV-")
    INVOICE_START = _env_int("INVOICE_START", 1)
    CORRECTION_PREFIX = os.getenv("CORRECTION_PREFIX", "COR-")
    CORRECTION_START = _env_int("CORRECTION_START", 1)
    SEQUENCE_PADDING = _env_int("SEQUENCE_PADDING", 6)

    # Room booking lock lease
    ROOM_LOCK_TTL_SECONDS = _env_int("ROOM_LOCK_TTL_SECONDS", 30)
    # how long a writer waits for a held room before giving up
    ROOM_LOCK_WAIT_SECONDS = _env_float("ROOM_LOCK_WAIT_SECONDS", 30.0)
    ROOM_LOCK_POLL_SECONDS = _env_float("ROOM_LOCK_POLL_SECONDS", 0.05)


settings = Settings()
