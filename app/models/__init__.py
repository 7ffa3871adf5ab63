"""Import all models so they are registered on Base.metadata."""
from app.models.company import Company
from app.models.item import Item
from app.models.location import Location, LocationCategory
from app.models.inventory import (
    InventoryRecord,
    InventoryStatus,
    StockMovement,
    StockMovementType,
    MOVABLE_STATUSES,
)
from app.models.purchase import (
    PurchaseOrder,
    POStatus,
    AdvancedShippingNotice,
    ASNStatus,
    ASNDetail,
    ASNDetailStatus,
)
from app.models.order import SalesOrder, SalesOrderStatus, SalesOrderDetail
from app.models.picking import Picking, PickingStatus, PickingDetail, PickingDetailStatus

__all__ = [
    "Company",
    "Item",
    "Location",
    "LocationCategory",
    "InventoryRecord",
    "InventoryStatus",
    "StockMovement",
    "StockMovementType",
    "MOVABLE_STATUSES",
    "PurchaseOrder",
    "POStatus",
    "AdvancedShippingNotice",
    "ASNStatus",
    "ASNDetail",
    "ASNDetailStatus",
    "SalesOrder",
    "SalesOrderStatus",
    "SalesOrderDetail",
    "Picking",
    "PickingStatus",
    "PickingDetail",
    "PickingDetailStatus",
]
