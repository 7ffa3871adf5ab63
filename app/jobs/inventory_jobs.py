"""
Inventory Consistency Jobs

Scheduled repair of inventory status and location capacity caches.
"""

import logging
from typing import Dict, Any

from app.database import async_session_factory
from app.services.errors import InventoryMovementError
from app.services.reconciliation_service import InventoryReconciliationService

logger = logging.getLogger(__name__)


async def sync_inventory_consistency() -> Dict[str, Any]:
    """
    Run the reconciliation pass across every company.

    A conflicting concurrent transfer makes the pass roll back; the next
    scheduled run picks the work up again.
    """
    async with async_session_factory() as db:
        try:
            result = await InventoryReconciliationService(db).run()
        except InventoryMovementError as e:
            logger.warning(f"Inventory consistency sync skipped: {e.code} {e.message}")
            return {"success": False, "code": e.code}

    return {"success": True, **result.model_dump()}
