"""
Transfer Engine.

Moves a quantity of one item from a source location to a destination location
on behalf of a document line, as a single unit of work:

    1. quantity > 0
    2. ownership chain of the line
    3. quantity <= line remaining
    4. destination exists, is active and has the right category
    5. source exists and has the right category
    6. destination has room
    7. source holds enough available stock

then reduce source, release source capacity, add to destination, take
destination capacity, record line progress and append the movement history.
The first failing check wins and nothing is written.
"""
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory import MOVABLE_STATUSES, StockMovementType
from app.models.item import Item
from app.schemas.wms import TransferResult
from app.services.errors import (
    InvalidQuantityError,
    OverFulfillmentError,
    InvalidLocationError,
    InsufficientStockError,
    NotFoundError,
)
from app.services.inventory_ledger import InventoryLedger
from app.services.location_capacity import LocationCapacityTracker
from app.services.ownership_guard import OwnershipGuard
from app.services.progress_tracker import (
    COMPLETE_STATUS,
    DESTINATION_CATEGORY,
    SOURCE_CATEGORY,
    DemandLineKind,
    LineProgressTracker,
)
from app.services.unit_of_work import atomic


logger = logging.getLogger(__name__)


MOVEMENT_TYPES = {
    DemandLineKind.ASN_DETAIL: StockMovementType.PUTAWAY.value,
    DemandLineKind.PICKING_DETAIL: StockMovementType.PICK.value,
}

REFERENCE_PREFIX = {
    DemandLineKind.ASN_DETAIL: "ASN",
    DemandLineKind.PICKING_DETAIL: "PICK",
}


def validate_quantity(quantity, context: Optional[dict] = None) -> None:
    """Reject anything but a positive whole number."""
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InvalidQuantityError(
            "Quantity must be a whole number greater than zero",
            context=context or {"requested": quantity},
        )


class TransferEngine:
    """Atomic two-sided stock transfer tied to a document line."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.guard = OwnershipGuard(db)
        self.ledger = InventoryLedger(db)
        self.capacity = LocationCapacityTracker(db)
        self.progress = LineProgressTracker(db)

    async def _get_item_cost(self, item_id: uuid.UUID, company_id: uuid.UUID) -> Decimal:
        result = await self.db.execute(
            select(Item.cost_price).where(
                Item.id == item_id,
                Item.company_id == company_id,
            )
        )
        cost = result.scalar_one_or_none()
        if cost is None:
            raise NotFoundError("Item not found", context={"item_id": str(item_id)})
        return Decimal(cost)

    async def apply_transfer(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        kind: DemandLineKind,
        document_id: uuid.UUID,
        demand_line_id: uuid.UUID,
        item_id: uuid.UUID,
        source_location_id: uuid.UUID,
        destination_location_id: uuid.UUID,
        quantity: int,
        unit_cost: Optional[Decimal] = None,
        expected_upstream_id: Optional[uuid.UUID] = None,
    ) -> TransferResult:
        """
        Validate and apply a transfer inside the caller's transaction.

        Does not commit; use transfer() or wrap in atomic().
        """
        context = {
            "document_id": str(document_id),
            "demand_line_id": str(demand_line_id),
            "item_id": str(item_id),
            "source_location_id": str(source_location_id),
            "destination_location_id": str(destination_location_id),
            "requested": quantity,
        }

        # 1. Quantity
        validate_quantity(quantity, context)

        # 2. Ownership, re-read inside this transaction
        ownership = await self.guard.validate_ownership(
            kind,
            document_id,
            demand_line_id,
            company_id,
            expected_upstream_id=expected_upstream_id,
            item_id=item_id,
        )
        line = ownership.demand_line

        # 3. Remaining on the line
        if quantity > line.remaining_quantity:
            raise OverFulfillmentError(
                f"Quantity {quantity} exceeds remaining {line.remaining_quantity}",
                context={
                    **context,
                    "required": line.required_quantity,
                    "fulfilled": line.fulfilled_quantity,
                    "remaining": line.remaining_quantity,
                },
            )

        # 4. Destination
        destination = await self.capacity.get_location(destination_location_id, company_id)
        required_category = DESTINATION_CATEGORY[kind]
        if not destination or not destination.is_active:
            raise InvalidLocationError("Destination location not found or inactive", context=context)
        if destination.category != required_category:
            raise InvalidLocationError(
                f"Destination must be a {required_category} location, got {destination.category}",
                context={**context, "location_code": destination.code, "category": destination.category},
            )
        if destination.id == source_location_id:
            raise InvalidLocationError("Source and destination are the same location", context=context)

        # 5. Source location
        source = await self.capacity.get_location(source_location_id, company_id)
        required_category = SOURCE_CATEGORY[kind]
        if not source:
            raise InvalidLocationError("Source location not found", context=context)
        if source.category != required_category:
            raise InvalidLocationError(
                f"Source must be a {required_category} location, got {source.category}",
                context={**context, "location_code": source.code, "category": source.category},
            )

        # 6. Destination capacity
        await self.capacity.check_capacity(destination_location_id, quantity, company_id)

        # 7. Source stock
        source_record = await self.ledger.get_record(company_id, item_id, source_location_id)
        available = (
            source_record.quantity
            if source_record and source_record.status in MOVABLE_STATUSES
            else 0
        )
        if quantity > available:
            raise InsufficientStockError(
                f"Insufficient stock at source: requested {quantity}, available {available}",
                context={**context, "available": available},
            )

        if unit_cost is None:
            unit_cost = await self._get_item_cost(item_id, company_id)
        reference = f"{REFERENCE_PREFIX[kind]}-{document_id}-{demand_line_id}"

        # a-b. Source side
        source_record = await self.ledger.reduce(company_id, item_id, source_location_id, quantity)
        await self.capacity.apply_delta(source_location_id, -quantity, company_id)

        # c-d. Destination side
        destination_record = await self.ledger.add(
            company_id, item_id, destination_location_id, quantity, unit_cost,
            source_reference=reference,
        )
        await self.capacity.apply_delta(destination_location_id, quantity, company_id)

        # e. Line progress
        line = await self.progress.record_fulfillment(kind, demand_line_id, quantity, company_id)

        await self.ledger.record_movement(
            company_id,
            MOVEMENT_TYPES[kind],
            item_id,
            quantity,
            unit_cost=unit_cost,
            from_location_id=source_location_id,
            to_location_id=destination_location_id,
            document_id=document_id,
            demand_line_id=demand_line_id,
            reference=reference,
            user_id=user_id,
        )

        logger.info(
            f"Transferred {quantity} of item {item_id} from {source_location_id} to "
            f"{destination_location_id} for {kind.value} {demand_line_id} "
            f"(document {document_id}, user {user_id})"
        )

        return TransferResult(
            document_id=document_id,
            demand_line_id=line.id,
            item_id=item_id,
            source_location_id=source_location_id,
            destination_location_id=destination_location_id,
            quantity=quantity,
            required_quantity=line.required_quantity,
            fulfilled_quantity=line.fulfilled_quantity,
            remaining_quantity=line.remaining_quantity,
            line_status=line.status,
            is_complete=line.status == COMPLETE_STATUS[kind],
            source_quantity_after=source_record.quantity,
            destination_quantity_after=destination_record.quantity,
        )

    async def transfer(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        kind: DemandLineKind,
        document_id: uuid.UUID,
        demand_line_id: uuid.UUID,
        item_id: uuid.UUID,
        source_location_id: uuid.UUID,
        destination_location_id: uuid.UUID,
        quantity: int,
        unit_cost: Optional[Decimal] = None,
        expected_upstream_id: Optional[uuid.UUID] = None,
    ) -> TransferResult:
        """Apply a transfer and commit it; roll back entirely on any failure."""
        async with atomic(
            self.db,
            "transfer",
            document_id=str(document_id),
            demand_line_id=str(demand_line_id),
        ):
            result = await self.apply_transfer(
                company_id,
                user_id,
                kind,
                document_id,
                demand_line_id,
                item_id,
                source_location_id,
                destination_location_id,
                quantity,
                unit_cost=unit_cost,
                expected_upstream_id=expected_upstream_id,
            )
        return result
