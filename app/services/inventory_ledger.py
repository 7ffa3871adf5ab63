"""
Inventory Ledger.

Owns every write to inventory_records: creation on first inbound, merge with
weighted-average cost, reduction, and the EMPTY status at zero. Quantity and
status are always assigned together in the same method, so a record can never
hold a positive quantity with EMPTY status or zero quantity with any other.

Nothing here commits. Callers wrap ledger calls in a unit of work.
"""
import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.inventory import (
    InventoryRecord,
    InventoryStatus,
    StockMovement,
    MOVABLE_STATUSES,
)
from app.services.errors import InvalidQuantityError, InsufficientStockError


logger = logging.getLogger(__name__)


def weighted_average_cost(
    existing_quantity: int,
    existing_cost: Optional[Decimal],
    incoming_quantity: int,
    incoming_cost: Optional[Decimal],
) -> Decimal:
    """
    Merge two costs weighted by quantity.

    With nothing to weigh (merged quantity 0) the existing cost is kept, or the
    incoming cost when the record never had one.
    """
    existing_cost = Decimal(existing_cost or 0)
    incoming_cost = Decimal(incoming_cost or 0)
    merged_quantity = existing_quantity + incoming_quantity
    if merged_quantity <= 0:
        cost = existing_cost if existing_cost else incoming_cost
    else:
        cost = (existing_quantity * existing_cost + incoming_quantity * incoming_cost) / merged_quantity
    step = Decimal(1).scaleb(-settings.COST_PRICE_DECIMALS)
    return cost.quantize(step, rounding=ROUND_HALF_UP)


class InventoryLedger:
    """Per (company, item, location) quantity records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== READS ====================

    async def get_record(
        self,
        company_id: uuid.UUID,
        item_id: uuid.UUID,
        location_id: uuid.UUID,
        for_update: bool = True,
    ) -> Optional[InventoryRecord]:
        """
        Load the record for an (item, location) pair.

        Always refreshed from the database so identity-map state from an
        earlier read is never trusted; locked when for_update is set.
        """
        query = (
            select(InventoryRecord)
            .where(
                InventoryRecord.company_id == company_id,
                InventoryRecord.item_id == item_id,
                InventoryRecord.location_id == location_id,
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_quantity(
        self,
        company_id: uuid.UUID,
        item_id: uuid.UUID,
        location_id: uuid.UUID,
    ) -> int:
        """Get quantity held at a location (0 if no record)."""
        record = await self.get_record(company_id, item_id, location_id, for_update=False)
        return record.quantity if record else 0

    # ==================== MUTATIONS ====================

    async def reduce(
        self,
        company_id: uuid.UUID,
        item_id: uuid.UUID,
        location_id: uuid.UUID,
        amount: int,
    ) -> InventoryRecord:
        """
        Take amount out of a location.

        Raises:
            InvalidQuantityError: amount is negative
            InsufficientStockError: no record, a non-movable status, or amount > quantity
        """
        if amount < 0:
            raise InvalidQuantityError(
                "Quantity to reduce cannot be negative",
                context={"item_id": str(item_id), "location_id": str(location_id), "requested": amount},
            )

        record = await self.get_record(company_id, item_id, location_id)
        available = record.quantity if record and record.status in MOVABLE_STATUSES else 0
        if record is None or amount > available:
            raise InsufficientStockError(
                f"Insufficient stock: requested {amount}, available {available}",
                context={
                    "item_id": str(item_id),
                    "location_id": str(location_id),
                    "requested": amount,
                    "available": available,
                    "status": record.status if record else None,
                },
            )

        record.quantity = record.quantity - amount
        if record.quantity == 0:
            record.status = InventoryStatus.EMPTY.value
        await self.db.flush()
        return record

    async def add(
        self,
        company_id: uuid.UUID,
        item_id: uuid.UUID,
        location_id: uuid.UUID,
        amount: int,
        unit_cost: Optional[Decimal],
        source_reference: Optional[str] = None,
    ) -> Optional[InventoryRecord]:
        """
        Put amount into a location, merging cost by weighted average.

        Any record left with quantity > 0 is AVAILABLE, whatever it was before.
        Returns None only for a zero add where no record exists yet.
        """
        if amount < 0:
            raise InvalidQuantityError(
                "Quantity to add cannot be negative",
                context={"item_id": str(item_id), "location_id": str(location_id), "requested": amount},
            )

        record = await self.get_record(company_id, item_id, location_id)

        if record is None:
            if amount == 0:
                return None
            record = InventoryRecord(
                company_id=company_id,
                item_id=item_id,
                location_id=location_id,
                quantity=amount,
                status=InventoryStatus.AVAILABLE.value,
                last_cost_price=weighted_average_cost(0, None, amount, unit_cost),
                source_reference=source_reference,
            )
            self.db.add(record)
            await self.db.flush()
            return record

        record.last_cost_price = weighted_average_cost(
            record.quantity, record.last_cost_price, amount, unit_cost
        )
        record.quantity = record.quantity + amount
        if record.quantity > 0:
            record.status = InventoryStatus.AVAILABLE.value
        else:
            record.status = InventoryStatus.EMPTY.value
        if source_reference and amount > 0:
            record.source_reference = source_reference
        await self.db.flush()
        return record

    async def record_movement(
        self,
        company_id: uuid.UUID,
        movement_type: str,
        item_id: uuid.UUID,
        quantity: int,
        unit_cost: Optional[Decimal] = None,
        from_location_id: Optional[uuid.UUID] = None,
        to_location_id: Optional[uuid.UUID] = None,
        document_id: Optional[uuid.UUID] = None,
        demand_line_id: Optional[uuid.UUID] = None,
        reference: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> StockMovement:
        """Append a movement history row."""
        movement = StockMovement(
            company_id=company_id,
            movement_type=movement_type,
            item_id=item_id,
            quantity=quantity,
            unit_cost=Decimal(unit_cost or 0),
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            document_id=document_id,
            demand_line_id=demand_line_id,
            reference=reference,
            created_by=user_id,
        )
        self.db.add(movement)
        await self.db.flush()
        return movement
