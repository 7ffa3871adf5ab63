# Services module
from app.services.inventory_ledger import InventoryLedger
from app.services.location_capacity import LocationCapacityTracker
from app.services.progress_tracker import LineProgressTracker, DemandLineKind
from app.services.ownership_guard import OwnershipGuard, OwnershipResult
from app.services.transfer_engine import TransferEngine

# Workflows
from app.services.putaway_service import PutawayService
from app.services.picking_service import PickingService
from app.services.inventory_query_service import InventoryQueryService
from app.services.reconciliation_service import InventoryReconciliationService

__all__ = [
    "InventoryLedger",
    "LocationCapacityTracker",
    "LineProgressTracker",
    "DemandLineKind",
    "OwnershipGuard",
    "OwnershipResult",
    "TransferEngine",
    # Workflows
    "PutawayService",
    "PickingService",
    "InventoryQueryService",
    "InventoryReconciliationService",
]
