"""
All-or-nothing write blocks for the reservation and billing services
"""
import logging
from contextlib import asynccontextmanager

from pymongo.errors import DuplicateKeyError, PyMongoError

from app.config.database import db_config
from app.services.exceptions import ConflictError, InternalError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(action: str):
    """
    Run the block inside one MongoDB transaction and yield its session.
    Driver failures abort the transaction and surface as a single error:
    a unique-key clash as ConflictError, anything else as InternalError.
    """
    try:
        async with db_config.transaction() as session:
            yield session
    except DuplicateKeyError as exc:
        logger.warning("Duplicate key while trying to %s: %s", action, exc)
        raise ConflictError(f"Could not {action}: a record with the same unique number already exists.") from exc
    except PyMongoError as exc:
        logger.error("Database failure while trying to %s: %s", action, exc)
        raise InternalError(f"Could not {action}; no changes were saved.") from exc
