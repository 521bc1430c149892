"""
Database configuration and connection management for MongoDB
"""
from contextlib import asynccontextmanager
from motor.motor_asyncio import AsyncIOMotorClient
from typing import Optional
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class DatabaseConfig:
    """MongoDB database configuration"""

    def __init__(self):
        self.MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
        self.DATABASE_NAME = os.getenv("DATABASE_NAME", "hotel_pms")
        # Multi-document transactions need a replica set or sharded cluster
        self.MONGO_TRANSACTIONS = os.getenv("MONGO_TRANSACTIONS", "True") == "True"
        self.client: Optional[AsyncIOMotorClient] = None
        self.database = None

    async def connect_db(self):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(self.MONGO_URI)
            self.database = self.client[self.DATABASE_NAME]
            # Test connection
            await self.client.admin.command('ping')
            logger.info("Connected to MongoDB: %s", self.DATABASE_NAME)
        except Exception as e:
            logger.error("Error connecting to MongoDB: %s", e)
            raise
        if not self.MONGO_TRANSACTIONS:
            logger.warning("MongoDB transactions disabled; multi-step writes are not atomic")

    async def close_db(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    async def ensure_indexes(self):
        """Unique keys and the lookups the availability check relies on"""
        await self.database[Collections.RESERVATIONS].create_index("confirmation_number", unique=True)
        await self.database[Collections.RESERVATIONS].create_index(
            [("rooms.room_id", 1), ("check_in_date", 1), ("check_out_date", 1)]
        )
        await self.database[Collections.ROOMS].create_index("room_number", unique=True)
        await self.database[Collections.RESERVATION_STATUS_LOGS].create_index("reservation_id")
        await self.database[Collections.INVOICES].create_index("reservation_id")
        # regular invoices carry no correction number and corrections no invoice number
        for field in ("invoice_number", "correction_number"):
            await self.database[Collections.INVOICES].create_index(
                field, unique=True, partialFilterExpression={field: {"$type": "string"}}
            )
        await self.database[Collections.PAYMENTS].create_index("invoice_id")
        logger.info("MongoDB indexes ensured")

    def get_collection(self, collection_name: str):
        """Get a specific collection"""
        if self.database is None:
            raise Exception("Database not connected")
        return self.database[collection_name]

    @asynccontextmanager
    async def transaction(self):
        """
        Open a session with a running transaction. Yields None when transactions
        are disabled, in which case callers run their writes unsessioned.
        """
        if not self.MONGO_TRANSACTIONS:
            yield None
            return
        async with await self.client.start_session() as session:
            async with session.start_transaction():
                yield session


# Global database instance
db_config = DatabaseConfig()


# Collection names
class Collections:
    # Catalog
    ROOM_TYPES = "room_types"
    ROOMS = "rooms"
    RATE_PLANS = "rate_plans"
    RATE_CALENDARS = "rate_calendars"
    RATE_CALENDAR_RULES = "rate_calendar_rules"
    CANCELLATION_POLICIES = "cancellation_policies"
    ARTICLES = "articles"
    GUESTS = "guests"
    COMPANIES = "companies"

    # Reservations
    RESERVATIONS = "reservations"
    RESERVATION_STATUS_LOGS = "reservation_status_logs"
    RESERVATION_DOCUMENTS = "reservation_documents"
    HOUSEKEEPING_LOGS = "housekeeping_logs"
    ROOM_LOCKS = "room_locks"
    SERVICE_ORDERS = "service_orders"

    # Billing
    INVOICES = "invoices"
    PAYMENTS = "payments"

    # Counters
    SEQUENCES = "sequences"
