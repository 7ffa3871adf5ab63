"""Commit/rollback boundary shared by every inventory-mutating workflow."""
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.errors import (
    InventoryMovementError,
    is_concurrency_failure,
    to_concurrency_conflict,
)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str, **context):
    """
    Run the enclosed mutations as one transaction.

    Commits when the block finishes. Any domain error or persistence error
    rolls everything back; persistence conflicts are re-raised as
    ConcurrencyConflictError.

    Usage:
        async with atomic(self.db, "putaway", asn_id=str(asn_id)):
            result = await engine.apply_transfer(...)
    """
    try:
        yield
        await db.commit()
    except InventoryMovementError as e:
        await db.rollback()
        logger.warning(f"{operation} rejected [{e.code}]: {e.message} context={e.context}")
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        if is_concurrency_failure(e):
            logger.error(f"{operation} concurrency conflict: {e.__class__.__name__} context={context}")
            raise to_concurrency_conflict(e, context) from e
        logger.error(f"{operation} failed: {e} context={context}")
        raise
