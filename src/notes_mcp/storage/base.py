"""Shared plumbing for the SQLite-backed repositories."""
import logging
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from notes_mcp.exceptions import ConstraintViolationError, ErrorCode
from notes_mcp.models.db_models import get_session_factory, get_write_lock, init_db

logger = logging.getLogger(__name__)


class Repository:
    """Base class holding the engine, session factory and writer lock.

    Every mutating method of a subclass runs under ``self.write_lock`` and
    commits exactly once, so a multi-statement write is a single atomic
    unit. Reads do not take the lock.
    """

    def __init__(self, engine=None):
        """Initialize the repository.

        Args:
            engine: SQLAlchemy engine. If None, uses default from config.
        """
        self.engine = engine if engine is not None else init_db()
        self.session_factory = get_session_factory(self.engine)
        self.write_lock = get_write_lock(self.engine)


def constraint_violation(
    error: IntegrityError,
    message: str,
    field: Optional[str] = None,
    value: Optional[Any] = None,
    unique_code: ErrorCode = ErrorCode.CONSTRAINT_VIOLATION,
) -> ConstraintViolationError:
    """Translate a SQLAlchemy IntegrityError into a ConstraintViolationError.

    SQLite reports the failing rule in the driver message; unique-key
    conflicts get ``unique_code``, foreign-key failures get
    REFERENCE_VIOLATION and anything else the generic code.
    """
    detail = str(error.orig) if error.orig is not None else str(error)
    if "UNIQUE constraint failed" in detail:
        code = unique_code
    elif "FOREIGN KEY constraint failed" in detail:
        code = ErrorCode.REFERENCE_VIOLATION
    else:
        code = ErrorCode.CONSTRAINT_VIOLATION
    logger.warning(f"Constraint violation ({code.name}): {detail}")
    return ConstraintViolationError(
        message, field=field, value=value, code=code, original_error=error.orig
    )
