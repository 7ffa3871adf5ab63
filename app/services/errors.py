"""
Inventory movement error taxonomy.

Every rejected movement raises one of these. The API layer turns them into
{"error", "code", "context", "retryable"} JSON with the class's status code.
"""
from typing import Dict, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError


class InventoryMovementError(Exception):
    """Base exception for inventory movement failures."""
    code = "INVENTORY_MOVEMENT_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str, context: Optional[Dict] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        return {
            "error": self.message,
            "code": self.code,
            "context": self.context,
            "retryable": self.retryable,
        }


class InvalidQuantityError(InventoryMovementError):
    code = "INVALID_QUANTITY"
    status_code = 400


class NotFoundError(InventoryMovementError):
    code = "NOT_FOUND"
    status_code = 404


class OwnershipMismatchError(InventoryMovementError):
    """Line-item does not belong to the document the caller named."""
    code = "OWNERSHIP_MISMATCH"
    status_code = 409


class OverFulfillmentError(InventoryMovementError):
    code = "OVER_FULFILLMENT"
    status_code = 409


class InvalidLocationError(InventoryMovementError):
    code = "INVALID_LOCATION"
    status_code = 400


class CapacityExceededError(InventoryMovementError):
    code = "CAPACITY_EXCEEDED"
    status_code = 409


class InsufficientStockError(InventoryMovementError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409


class ConcurrencyConflictError(InventoryMovementError):
    """Another transaction changed the same rows; resubmitting is safe."""
    code = "CONCURRENCY_CONFLICT"
    status_code = 409
    retryable = True


class InvalidDocumentStateError(InventoryMovementError):
    code = "INVALID_DOCUMENT_STATE"
    status_code = 409


# PostgreSQL serialization_failure / deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_concurrency_failure(exc: Exception) -> bool:
    """Check if a persistence error means a concurrent writer won."""
    if isinstance(exc, (StaleDataError, IntegrityError)):
        return True
    if isinstance(exc, DBAPIError):
        sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        if sqlstate in _RETRYABLE_SQLSTATES:
            return True
        if isinstance(exc, OperationalError) and "database is locked" in str(exc.orig):
            return True
    return False


def to_concurrency_conflict(exc: Exception, context: Optional[Dict] = None) -> ConcurrencyConflictError:
    """Wrap a persistence conflict in the retryable domain error."""
    return ConcurrencyConflictError(
        "The records were changed by another operation. Please retry the request.",
        context={**(context or {}), "cause": exc.__class__.__name__},
    )
