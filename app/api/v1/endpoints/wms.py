"""WMS API endpoints for putaway, picking and inventory views.

Inventory movement errors raised by the services are rendered by the
application-level handler as {"error", "code", "context", "retryable"}.
"""
from typing import List
import uuid

from fastapi import APIRouter, Query, Depends

from app.api.deps import DB, Context, require_permissions
from app.schemas.wms import (
    ASNReceiptResponse,
    BulkPickingRequest,
    BulkPutawayRequest,
    BulkTransferResponse,
    DocumentProgressResponse,
    GeneratePickingRequest,
    InventorySnapshotRow,
    LocationSuggestionResponse,
    PickingCompletionResponse,
    PickingItemRequest,
    PickingResponse,
    PutawayRequest,
    PutawaySuggestionResponse,
    ReconciliationResult,
    TransferResult,
)
from app.services.inventory_query_service import InventoryQueryService
from app.services.picking_service import PickingService
from app.services.putaway_service import PutawayService
from app.services.reconciliation_service import InventoryReconciliationService


router = APIRouter()


# ==================== INBOUND ====================

@router.post(
    "/asns/{asn_id}/receive",
    response_model=ASNReceiptResponse,
    dependencies=[Depends(require_permissions("wms:receive"))]
)
async def receive_asn(asn_id: uuid.UUID, db: DB, context: Context):
    """Receive an in-transit ASN into its holding location."""
    service = PutawayService(db)
    return await service.receive_asn(context.company_id, context.user_id, asn_id)


@router.post(
    "/putaway",
    response_model=TransferResult,
    dependencies=[Depends(require_permissions("wms:putaway"))]
)
async def process_putaway(data: PutawayRequest, db: DB, context: Context):
    """Move stock of an ASN line from the ASN holding location into storage."""
    service = PutawayService(db)
    return await service.process_putaway(
        context.company_id,
        context.user_id,
        data.asn_id,
        data.asn_detail_id,
        data.item_id,
        data.destination_location_id,
        data.quantity,
    )


@router.post(
    "/putaway/bulk",
    response_model=BulkTransferResponse,
    dependencies=[Depends(require_permissions("wms:putaway"))]
)
async def process_bulk_putaway(data: BulkPutawayRequest, db: DB, context: Context):
    """Put away several lines of one ASN; each line is accepted or rejected on its own."""
    service = PutawayService(db)
    return await service.process_bulk_putaway(context.company_id, context.user_id, data.asn_id, data.lines)


@router.get(
    "/putaway/suggestions",
    response_model=PutawaySuggestionResponse,
    dependencies=[Depends(require_permissions("wms:putaway"))]
)
async def get_putaway_suggestions(
    db: DB,
    context: Context,
    item_id: uuid.UUID = Query(...),
    quantity: int = Query(..., ge=1),
):
    """Suggest storage locations with room for an item, least utilized first."""
    service = PutawayService(db)
    return await service.get_putaway_suggestions(context.company_id, item_id, quantity)


# ==================== OUTBOUND ====================

@router.post(
    "/sales-orders/{sales_order_id}/pickings",
    response_model=PickingResponse,
    status_code=201,
    dependencies=[Depends(require_permissions("wms:picking"))]
)
async def generate_picking(
    sales_order_id: uuid.UUID,
    data: GeneratePickingRequest,
    db: DB,
    context: Context,
):
    """Generate a picking for a confirmed sales order."""
    service = PickingService(db)
    return await service.generate_picking(
        context.company_id,
        context.user_id,
        sales_order_id,
        data.holding_location_id,
        notes=data.notes,
    )


@router.get(
    "/pickings/suggestions",
    response_model=LocationSuggestionResponse,
    dependencies=[Depends(require_permissions("wms:picking"))]
)
async def get_location_suggestions(
    db: DB,
    context: Context,
    item_id: uuid.UUID = Query(...),
    quantity: int = Query(..., ge=1),
):
    """Suggest storage locations to pick an item from, oldest stock first."""
    service = PickingService(db)
    return await service.get_location_suggestions(context.company_id, item_id, quantity)


@router.post(
    "/pickings/{picking_id}/items",
    response_model=TransferResult,
    dependencies=[Depends(require_permissions("wms:picking"))]
)
async def process_picking_item(
    picking_id: uuid.UUID,
    data: PickingItemRequest,
    db: DB,
    context: Context,
):
    """Pick stock for a picking line into the picking's holding location."""
    service = PickingService(db)
    return await service.process_picking_item(
        context.company_id,
        context.user_id,
        picking_id,
        data.picking_detail_id,
        data.source_location_id,
        data.quantity,
    )


@router.post(
    "/pickings/{picking_id}/items/bulk",
    response_model=BulkTransferResponse,
    dependencies=[Depends(require_permissions("wms:picking"))]
)
async def process_bulk_picking(
    picking_id: uuid.UUID,
    data: BulkPickingRequest,
    db: DB,
    context: Context,
):
    """Pick several lines of one picking; each line is accepted or rejected on its own."""
    service = PickingService(db)
    return await service.process_bulk_picking(context.company_id, context.user_id, picking_id, data.lines)


@router.post(
    "/pickings/{picking_id}/complete",
    response_model=PickingCompletionResponse,
    dependencies=[Depends(require_permissions("wms:picking"))]
)
async def complete_picking(picking_id: uuid.UUID, db: DB, context: Context):
    """Complete an in-progress picking."""
    service = PickingService(db)
    return await service.complete_picking(context.company_id, context.user_id, picking_id)


# ==================== INVENTORY VIEWS ====================

@router.get(
    "/inventory/items/{item_id}",
    response_model=List[InventorySnapshotRow],
    dependencies=[Depends(require_permissions("inventory:view"))]
)
async def get_inventory_snapshot(item_id: uuid.UUID, db: DB, context: Context):
    """Stock of an item per location."""
    service = InventoryQueryService(db)
    return await service.get_inventory_snapshot(context.company_id, item_id)


@router.get(
    "/documents/{document_id}/progress",
    response_model=DocumentProgressResponse,
    dependencies=[Depends(require_permissions("inventory:view"))]
)
async def get_demand_line_progress(document_id: uuid.UUID, db: DB, context: Context):
    """Line progress of an ASN or picking."""
    service = InventoryQueryService(db)
    return await service.get_demand_line_progress(context.company_id, document_id)


@router.post(
    "/inventory/reconcile",
    response_model=ReconciliationResult,
    dependencies=[Depends(require_permissions("wms:putaway"))]
)
async def reconcile_inventory(db: DB, context: Context):
    """Repair status/quantity disagreement and location capacity for the caller's company."""
    service = InventoryReconciliationService(db)
    return await service.run(context.company_id)
