"""
Line-item progress tracking for inbound (ASN) and outbound (picking) lines.

remaining = required - fulfilled is always derived, never stored. Status is a
pure function of the two counters: PENDING at 0, PARTIAL in between, and the
kind's complete status once fulfilled reaches required.
"""
import logging
import uuid
from enum import Enum
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.location import LocationCategory
from app.models.purchase import ASNDetail, ASNDetailStatus
from app.models.picking import PickingDetail, PickingDetailStatus
from app.services.errors import InvalidQuantityError, NotFoundError, OverFulfillmentError


logger = logging.getLogger(__name__)


DemandLine = Union[ASNDetail, PickingDetail]


class DemandLineKind(str, Enum):
    """Which document line a transfer fulfils."""
    ASN_DETAIL = "ASN_DETAIL"          # Putaway: holding -> storage
    PICKING_DETAIL = "PICKING_DETAIL"  # Picking: storage -> holding


DEMAND_LINE_MODELS = {
    DemandLineKind.ASN_DETAIL: ASNDetail,
    DemandLineKind.PICKING_DETAIL: PickingDetail,
}

COMPLETE_STATUS = {
    DemandLineKind.ASN_DETAIL: ASNDetailStatus.COMPLETE.value,
    DemandLineKind.PICKING_DETAIL: PickingDetailStatus.PICKED.value,
}

# Category the destination of a transfer must have
DESTINATION_CATEGORY = {
    DemandLineKind.ASN_DETAIL: LocationCategory.STORAGE.value,
    DemandLineKind.PICKING_DETAIL: LocationCategory.HOLDING.value,
}

# Category the source of a transfer must have
SOURCE_CATEGORY = {
    DemandLineKind.ASN_DETAIL: LocationCategory.HOLDING.value,
    DemandLineKind.PICKING_DETAIL: LocationCategory.STORAGE.value,
}


def derive_line_status(required: int, fulfilled: int, complete_status: str) -> str:
    """Status implied by a line's counters."""
    if fulfilled <= 0:
        return "PENDING"
    if fulfilled < required:
        return "PARTIAL"
    return complete_status


class LineProgressTracker:
    """Records fulfilled quantity against demand lines."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_demand_line(
        self,
        kind: DemandLineKind,
        demand_line_id: uuid.UUID,
        company_id: uuid.UUID,
        for_update: bool = True,
    ) -> Optional[DemandLine]:
        """Load a live (not deleted) line of the given kind, refreshed from the database."""
        model = DEMAND_LINE_MODELS[kind]
        query = (
            select(model)
            .where(
                model.id == demand_line_id,
                model.company_id == company_id,
                model.is_deleted == False,
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def record_fulfillment(
        self,
        kind: DemandLineKind,
        demand_line_id: uuid.UUID,
        quantity: int,
        company_id: uuid.UUID,
    ) -> DemandLine:
        """
        Add quantity to a line's fulfilled counter and refresh its status.

        Not idempotent: every call counts. Callers invoke it exactly once per
        accepted transfer, inside the transfer's transaction.

        Raises:
            InvalidQuantityError: quantity <= 0
            NotFoundError: line does not exist for the company
            OverFulfillmentError: fulfilled would exceed required
        """
        if quantity <= 0:
            raise InvalidQuantityError(
                "Fulfilled quantity must be greater than zero",
                context={"demand_line_id": str(demand_line_id), "requested": quantity},
            )

        line = await self.get_demand_line(kind, demand_line_id, company_id)
        if not line:
            raise NotFoundError(
                "Document line not found",
                context={"demand_line_id": str(demand_line_id), "kind": kind.value},
            )

        new_fulfilled = line.fulfilled_quantity + quantity
        if new_fulfilled > line.required_quantity:
            raise OverFulfillmentError(
                f"Quantity {quantity} exceeds remaining {line.remaining_quantity}",
                context={
                    "demand_line_id": str(line.id),
                    "item_id": str(line.item_id),
                    "requested": quantity,
                    "required": line.required_quantity,
                    "fulfilled": line.fulfilled_quantity,
                    "remaining": line.remaining_quantity,
                },
            )

        line.fulfilled_quantity = new_fulfilled
        line.status = derive_line_status(line.required_quantity, new_fulfilled, COMPLETE_STATUS[kind])
        await self.db.flush()
        return line
