"""
Picking Service - outbound flow from confirmed sales order to holding.

    generate_picking          CONFIRMED sales order -> picking with one line per order line
    process_picking_item      storage -> picking holding location for one line
    complete_picking          close the picking; order -> READY_TO_SHIP when fully picked
    process_bulk_picking      several picks, each accepted or rejected on its own
    get_location_suggestions  oldest available storage stock first
"""
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory import InventoryRecord, InventoryStatus
from app.models.location import Location, LocationCategory
from app.models.order import SalesOrder, SalesOrderDetail, SalesOrderStatus, can_transition
from app.models.picking import Picking, PickingDetail, PickingDetailStatus, PickingStatus
from app.schemas.wms import (
    BulkLineResult,
    BulkTransferResponse,
    LocationSuggestion,
    LocationSuggestionResponse,
    PickingCompletionResponse,
    PickingItemRequest,
    PickingLineResponse,
    PickingResponse,
    TransferResult,
)
from app.services.errors import (
    InsufficientStockError,
    InvalidDocumentStateError,
    InventoryMovementError,
    InvalidLocationError,
    NotFoundError,
)
from app.services.progress_tracker import DemandLineKind
from app.services.transfer_engine import TransferEngine, validate_quantity
from app.services.unit_of_work import atomic


logger = logging.getLogger(__name__)


# Picking statuses that accept picks
PICKABLE_STATUSES = (PickingStatus.PENDING.value, PickingStatus.IN_PROGRESS.value)


class PickingService:
    """Service for picking operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.engine = TransferEngine(db)

    # ==================== HELPERS ====================

    async def _get_sales_order(self, sales_order_id: uuid.UUID, company_id: uuid.UUID) -> SalesOrder:
        result = await self.db.execute(
            select(SalesOrder)
            .where(
                SalesOrder.id == sales_order_id,
                SalesOrder.company_id == company_id,
                SalesOrder.is_deleted == False,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Sales order not found", context={"sales_order_id": str(sales_order_id)})
        return order

    async def _get_picking(self, picking_id: uuid.UUID, company_id: uuid.UUID) -> Picking:
        result = await self.db.execute(
            select(Picking)
            .where(
                Picking.id == picking_id,
                Picking.company_id == company_id,
                Picking.is_deleted == False,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        picking = result.scalar_one_or_none()
        if not picking:
            raise NotFoundError("Picking not found", context={"picking_id": str(picking_id)})
        return picking

    async def _get_picking_lines(
        self,
        picking_id: uuid.UUID,
        company_id: uuid.UUID,
        for_update: bool = False,
    ) -> List[PickingDetail]:
        query = (
            select(PickingDetail)
            .where(
                PickingDetail.picking_id == picking_id,
                PickingDetail.company_id == company_id,
                PickingDetail.is_deleted == False,
            )
            .order_by(PickingDetail.created_at)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _storage_availability(self, company_id: uuid.UUID, item_id: uuid.UUID) -> int:
        """Total AVAILABLE quantity of an item across active storage locations."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(InventoryRecord.quantity), 0))
            .join(Location, Location.id == InventoryRecord.location_id)
            .where(
                InventoryRecord.company_id == company_id,
                InventoryRecord.item_id == item_id,
                InventoryRecord.status == InventoryStatus.AVAILABLE.value,
                Location.category == LocationCategory.STORAGE.value,
                Location.is_active == True,
            )
        )
        return int(result.scalar_one())

    def _build_picking_response(self, picking: Picking, lines: List[PickingDetail]) -> PickingResponse:
        return PickingResponse(
            id=picking.id,
            picking_number=picking.picking_number,
            sales_order_id=picking.sales_order_id,
            holding_location_id=picking.holding_location_id,
            status=picking.status,
            completed_date=picking.completed_date,
            created_at=picking.created_at,
            lines=[PickingLineResponse.model_validate(line) for line in lines],
        )

    # ==================== SUGGESTIONS ====================

    async def get_location_suggestions(
        self,
        company_id: uuid.UUID,
        item_id: uuid.UUID,
        quantity: int,
    ) -> LocationSuggestionResponse:
        """
        Suggest storage locations to pick from, oldest stock first.

        Walks AVAILABLE records until the requested quantity is covered.
        """
        result = await self.db.execute(
            select(InventoryRecord, Location)
            .join(Location, Location.id == InventoryRecord.location_id)
            .where(
                InventoryRecord.company_id == company_id,
                InventoryRecord.item_id == item_id,
                InventoryRecord.status == InventoryStatus.AVAILABLE.value,
                InventoryRecord.quantity > 0,
                Location.category == LocationCategory.STORAGE.value,
                Location.is_active == True,
            )
            .order_by(InventoryRecord.created_at, Location.code)
        )

        suggestions = []
        still_needed = quantity
        for record, location in result.all():
            if still_needed <= 0:
                break
            take = min(record.quantity, still_needed)
            suggestions.append(LocationSuggestion(
                location_id=location.id,
                location_code=location.code,
                available_quantity=record.quantity,
                suggested_quantity=take,
                last_updated=record.last_updated,
            ))
            still_needed -= take

        suggested_total = sum(s.suggested_quantity for s in suggestions)
        return LocationSuggestionResponse(
            item_id=item_id,
            requested_quantity=quantity,
            suggested_total=suggested_total,
            is_fully_covered=suggested_total >= quantity,
            suggestions=suggestions,
        )

    # ==================== GENERATION ====================

    async def generate_picking(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        sales_order_id: uuid.UUID,
        holding_location_id: uuid.UUID,
        notes: Optional[str] = None,
    ) -> PickingResponse:
        """
        Generate a picking for a confirmed sales order.

        Checks that storage holds enough available stock for every line and
        suggests a source location per line. The order moves to PICKING.
        """
        async with atomic(self.db, "generate_picking", sales_order_id=str(sales_order_id)):
            order = await self._get_sales_order(sales_order_id, company_id)
            if order.status != SalesOrderStatus.CONFIRMED.value:
                raise InvalidDocumentStateError(
                    f"Sales order {order.order_number} must be CONFIRMED to generate a picking (status {order.status})",
                    context={"sales_order_id": str(order.id), "status": order.status},
                )

            result = await self.db.execute(
                select(Picking.id).where(
                    Picking.sales_order_id == order.id,
                    Picking.company_id == company_id,
                    Picking.is_deleted == False,
                    Picking.status != PickingStatus.CANCELLED.value,
                )
            )
            existing = result.scalars().first()
            if existing:
                raise InvalidDocumentStateError(
                    f"Sales order {order.order_number} already has an active picking",
                    context={"sales_order_id": str(order.id), "picking_id": str(existing)},
                )

            holding = await self.engine.capacity.get_location(holding_location_id, company_id, for_update=False)
            if not holding or not holding.is_active or holding.category != LocationCategory.HOLDING.value:
                raise InvalidLocationError(
                    "Picking destination must be an active HOLDING location",
                    context={"location_id": str(holding_location_id)},
                )

            result = await self.db.execute(
                select(SalesOrderDetail)
                .where(
                    SalesOrderDetail.sales_order_id == order.id,
                    SalesOrderDetail.company_id == company_id,
                    SalesOrderDetail.is_deleted == False,
                )
                .order_by(SalesOrderDetail.created_at)
            )
            order_lines = list(result.scalars().all())
            if not order_lines:
                raise InvalidDocumentStateError(
                    f"Sales order {order.order_number} has no lines",
                    context={"sales_order_id": str(order.id)},
                )

            required_by_item = defaultdict(int)
            for order_line in order_lines:
                required_by_item[order_line.item_id] += order_line.quantity
            for item_id, required in required_by_item.items():
                available = await self._storage_availability(company_id, item_id)
                if available < required:
                    raise InsufficientStockError(
                        f"Insufficient storage stock for item {item_id}: required {required}, available {available}",
                        context={"item_id": str(item_id), "requested": required, "available": available},
                    )

            picking = Picking(
                company_id=company_id,
                picking_number=f"PK-{order.order_number}",
                sales_order_id=order.id,
                holding_location_id=holding.id,
                status=PickingStatus.PENDING.value,
                notes=notes,
                created_by=user_id,
            )
            self.db.add(picking)
            await self.db.flush()

            lines = []
            for order_line in order_lines:
                suggestion = await self.get_location_suggestions(company_id, order_line.item_id, order_line.quantity)
                line = PickingDetail(
                    company_id=company_id,
                    picking_id=picking.id,
                    sales_order_detail_id=order_line.id,
                    item_id=order_line.item_id,
                    location_id=suggestion.suggestions[0].location_id if suggestion.suggestions else None,
                    quantity_required=order_line.quantity,
                    quantity_picked=0,
                    status=PickingDetailStatus.PENDING.value,
                )
                self.db.add(line)
                lines.append(line)

            order.status = SalesOrderStatus.PICKING.value
            await self.db.flush()

        logger.info(
            f"Generated picking {picking.picking_number} for sales order {order.order_number}: "
            f"{len(lines)} lines (user {user_id})"
        )
        return self._build_picking_response(picking, lines)

    # ==================== PICKING ====================

    async def process_picking_item(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        picking_id: uuid.UUID,
        picking_detail_id: uuid.UUID,
        source_location_id: uuid.UUID,
        quantity: int,
    ) -> TransferResult:
        """
        Pick quantity of a picking line from a storage location.

        The destination is always the picking's holding location, read inside
        this transaction. The first accepted pick starts the picking.
        """
        async with atomic(
            self.db,
            "picking",
            picking_id=str(picking_id),
            picking_detail_id=str(picking_detail_id),
        ):
            validate_quantity(quantity, {"picking_detail_id": str(picking_detail_id), "requested": quantity})

            ownership = await self.engine.guard.validate_ownership(
                DemandLineKind.PICKING_DETAIL, picking_id, picking_detail_id, company_id
            )
            picking = ownership.document
            if picking.status not in PICKABLE_STATUSES:
                raise InvalidDocumentStateError(
                    f"Picking {picking.picking_number} does not accept picks (status {picking.status})",
                    context={"picking_id": str(picking.id), "status": picking.status},
                )

            line = ownership.demand_line
            result = await self.engine.apply_transfer(
                company_id,
                user_id,
                DemandLineKind.PICKING_DETAIL,
                picking_id,
                picking_detail_id,
                line.item_id,
                source_location_id,
                ownership.holding_location_id,
                quantity,
                expected_upstream_id=ownership.upstream_document_id,
            )

            line.picked_by = user_id
            line.picked_at = datetime.now(timezone.utc)
            if picking.status == PickingStatus.PENDING.value:
                logger.info(f"Picking {picking.picking_number} status PENDING -> IN_PROGRESS")
                picking.status = PickingStatus.IN_PROGRESS.value
            await self.db.flush()
            result.document_status = picking.status

        return result

    async def process_bulk_picking(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        picking_id: uuid.UUID,
        lines: List[PickingItemRequest],
    ) -> BulkTransferResponse:
        """
        Pick several lines of one picking.

        Each line is its own unit of work: a rejected line is reported with its
        error and does not undo the lines accepted before it.
        """
        response = BulkTransferResponse(document_id=picking_id)
        for line in lines:
            if line.quantity == 0:
                response.skipped += 1
                continue
            try:
                result = await self.process_picking_item(
                    company_id,
                    user_id,
                    picking_id,
                    line.picking_detail_id,
                    line.source_location_id,
                    line.quantity,
                )
            except InventoryMovementError as e:
                response.failed += 1
                response.results.append(
                    BulkLineResult(demand_line_id=line.picking_detail_id, success=False, error=e.to_dict())
                )
                continue
            response.succeeded += 1
            response.results.append(
                BulkLineResult(demand_line_id=line.picking_detail_id, success=True, result=result)
            )

        logger.info(
            f"Bulk picking for {picking_id}: {response.succeeded} accepted, "
            f"{response.failed} rejected, {response.skipped} skipped (user {user_id})"
        )
        return response

    # ==================== COMPLETION ====================

    async def complete_picking(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        picking_id: uuid.UUID,
    ) -> PickingCompletionResponse:
        """
        Close an in-progress picking.

        The sales order becomes READY_TO_SHIP only when every line is fully
        picked; otherwise it stays in PICKING.
        """
        async with atomic(self.db, "complete_picking", picking_id=str(picking_id)):
            picking = await self._get_picking(picking_id, company_id)
            if picking.status != PickingStatus.IN_PROGRESS.value:
                raise InvalidDocumentStateError(
                    f"Picking {picking.picking_number} must be IN_PROGRESS to complete (status {picking.status})",
                    context={"picking_id": str(picking.id), "status": picking.status},
                )

            lines = await self._get_picking_lines(picking.id, company_id, for_update=True)
            if sum(line.quantity_picked for line in lines) <= 0:
                raise InvalidDocumentStateError(
                    f"Picking {picking.picking_number} has nothing picked",
                    context={"picking_id": str(picking.id)},
                )
            fully_picked = all(line.status == PickingDetailStatus.PICKED.value for line in lines)

            picking.status = PickingStatus.COMPLETED.value
            picking.completed_date = datetime.now(timezone.utc)

            order = await self._get_sales_order(picking.sales_order_id, company_id)
            if fully_picked and can_transition(order.status, SalesOrderStatus.READY_TO_SHIP.value):
                logger.info(f"Sales order {order.order_number} status {order.status} -> READY_TO_SHIP")
                order.status = SalesOrderStatus.READY_TO_SHIP.value
            await self.db.flush()

        logger.info(f"Picking {picking.picking_number} completed (fully picked: {fully_picked}, user {user_id})")
        return PickingCompletionResponse(
            picking_id=picking.id,
            status=picking.status,
            completed_date=picking.completed_date,
            sales_order_id=order.id,
            sales_order_status=order.status,
            fully_picked=fully_picked,
        )
