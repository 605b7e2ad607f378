"""DB Error Translation: one mapping from SQLAlchemy exceptions to PersistenceError.

Invariants:
    - Callers above the repositories only ever see PersistenceError
    - Messages are generic; driver details go to the log, not the client
"""

import logging

from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)

from dislink.core.errors import PersistenceError

logger = logging.getLogger(__name__)


def translate_db_error(e: SQLAlchemyError, operation: str) -> PersistenceError:
    if isinstance(e, IntegrityError):
        logger.error(f"DB integrity error during {operation}: {e}")
        return PersistenceError("Integrity constraint violated", operation)
    if isinstance(e, OperationalError):
        logger.error(f"DB operational error during {operation}: {e}")
        return PersistenceError("Connection or operational error", operation)
    if isinstance(e, DBAPIError):
        logger.error(f"DB driver error during {operation}: {e}")
        return PersistenceError("Database driver error", operation)
    logger.error(f"SQLAlchemy error during {operation}: {e}")
    return PersistenceError("Database operation failed", operation)
