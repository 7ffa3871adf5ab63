"""
Putaway Service - inbound flow from ASN arrival to storage.

    receive_asn              IN_TRANSIT -> ARRIVED, shipped stock lands in the ASN holding location
    process_putaway          holding -> storage for one ASN line, ASN -> PUT_AWAY / COMPLETED
    process_bulk_putaway     several lines, each accepted or rejected on its own
    get_putaway_suggestions  storage locations with room, least utilized first
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory import StockMovementType
from app.models.item import Item
from app.models.location import Location, LocationCategory
from app.models.purchase import (
    AdvancedShippingNotice,
    ASNDetail,
    ASNDetailStatus,
    ASNStatus,
)
from app.schemas.wms import (
    ASNReceiptResponse,
    BulkLineResult,
    BulkPutawayLine,
    BulkTransferResponse,
    PutawaySuggestion,
    PutawaySuggestionResponse,
    TransferResult,
)
from app.services.errors import (
    InvalidDocumentStateError,
    InventoryMovementError,
    InvalidLocationError,
    NotFoundError,
)
from app.services.progress_tracker import DemandLineKind
from app.services.transfer_engine import TransferEngine, validate_quantity
from app.services.unit_of_work import atomic


logger = logging.getLogger(__name__)


# ASN statuses that allow putaway
PUTAWAY_ALLOWED_STATUSES = (
    ASNStatus.ARRIVED.value,
    ASNStatus.PROCESSED.value,
    ASNStatus.PUT_AWAY.value,
)


class PutawayService:
    """Service for ASN receiving and putaway."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.engine = TransferEngine(db)

    async def _get_asn(self, asn_id: uuid.UUID, company_id: uuid.UUID) -> AdvancedShippingNotice:
        result = await self.db.execute(
            select(AdvancedShippingNotice)
            .where(
                AdvancedShippingNotice.id == asn_id,
                AdvancedShippingNotice.company_id == company_id,
                AdvancedShippingNotice.is_deleted == False,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        asn = result.scalar_one_or_none()
        if not asn:
            raise NotFoundError("ASN not found", context={"asn_id": str(asn_id)})
        return asn

    async def _get_asn_lines(self, asn_id: uuid.UUID, company_id: uuid.UUID) -> list[ASNDetail]:
        result = await self.db.execute(
            select(ASNDetail)
            .where(
                ASNDetail.asn_id == asn_id,
                ASNDetail.company_id == company_id,
                ASNDetail.is_deleted == False,
            )
            .order_by(ASNDetail.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _line_unit_cost(self, line: ASNDetail, company_id: uuid.UUID) -> Decimal:
        """Shipment price when set, else the item's cost price."""
        if line.actual_price_per_item and Decimal(line.actual_price_per_item) > 0:
            return Decimal(line.actual_price_per_item)
        result = await self.db.execute(
            select(Item.cost_price).where(Item.id == line.item_id, Item.company_id == company_id)
        )
        cost = result.scalar_one_or_none()
        if cost is None:
            raise NotFoundError("Item not found", context={"item_id": str(line.item_id)})
        return Decimal(cost)

    # ==================== RECEIVING ====================

    async def receive_asn(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        asn_id: uuid.UUID,
    ) -> ASNReceiptResponse:
        """
        Record the arrival of an in-transit ASN.

        Every line's shipped quantity is added to the ASN's holding location
        in one transaction, after checking the holding location has room for
        the whole shipment.
        """
        async with atomic(self.db, "receive_asn", asn_id=str(asn_id)):
            asn = await self._get_asn(asn_id, company_id)
            if asn.status != ASNStatus.IN_TRANSIT.value:
                raise InvalidDocumentStateError(
                    f"ASN {asn.asn_number} cannot be received in status {asn.status}",
                    context={"asn_id": str(asn.id), "status": asn.status},
                )

            holding = await self.engine.capacity.get_location(asn.holding_location_id, company_id)
            if not holding or not holding.is_active or holding.category != LocationCategory.HOLDING.value:
                raise InvalidLocationError(
                    "ASN holding location not found, inactive or not a holding location",
                    context={"asn_id": str(asn.id), "location_id": str(asn.holding_location_id)},
                )

            lines = await self._get_asn_lines(asn.id, company_id)
            if not lines:
                raise InvalidDocumentStateError(
                    f"ASN {asn.asn_number} has no lines",
                    context={"asn_id": str(asn.id)},
                )

            total_quantity = sum(line.shipped_quantity for line in lines)
            await self.engine.capacity.check_capacity(holding.id, total_quantity, company_id)

            for line in lines:
                unit_cost = await self._line_unit_cost(line, company_id)
                reference = f"ASN-{asn.id}-{line.id}"
                await self.engine.ledger.add(
                    company_id, line.item_id, holding.id, line.shipped_quantity, unit_cost,
                    source_reference=reference,
                )
                await self.engine.ledger.record_movement(
                    company_id,
                    StockMovementType.RECEIPT.value,
                    line.item_id,
                    line.shipped_quantity,
                    unit_cost=unit_cost,
                    to_location_id=holding.id,
                    document_id=asn.id,
                    demand_line_id=line.id,
                    reference=reference,
                    user_id=user_id,
                )

            await self.engine.capacity.apply_delta(holding.id, total_quantity, company_id)

            asn.status = ASNStatus.ARRIVED.value
            asn.actual_arrival_date = datetime.now(timezone.utc)
            await self.db.flush()

        logger.info(
            f"ASN {asn.asn_number} received into {holding.code}: "
            f"{len(lines)} lines, {total_quantity} units (user {user_id})"
        )

        return ASNReceiptResponse(
            asn_id=asn.id,
            status=asn.status,
            holding_location_id=holding.id,
            actual_arrival_date=asn.actual_arrival_date,
            lines_received=len(lines),
            total_quantity=total_quantity,
        )

    # ==================== PUTAWAY ====================

    async def _refresh_asn_status(self, asn: AdvancedShippingNotice, company_id: uuid.UUID) -> str:
        lines = await self._get_asn_lines(asn.id, company_id)
        if lines and all(line.status == ASNDetailStatus.COMPLETE.value for line in lines):
            new_status = ASNStatus.COMPLETED.value
        else:
            new_status = ASNStatus.PUT_AWAY.value
        if asn.status != new_status:
            logger.info(f"ASN {asn.asn_number} status {asn.status} -> {new_status}")
            asn.status = new_status
            await self.db.flush()
        return asn.status

    async def process_putaway(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        asn_id: uuid.UUID,
        asn_detail_id: uuid.UUID,
        item_id: uuid.UUID,
        destination_location_id: uuid.UUID,
        quantity: int,
    ) -> TransferResult:
        """
        Move quantity of an ASN line from the ASN holding location to storage.

        The source is always the holding location recorded on the ASN, read
        inside this transaction.
        """
        async with atomic(
            self.db,
            "putaway",
            asn_id=str(asn_id),
            asn_detail_id=str(asn_detail_id),
        ):
            validate_quantity(quantity, {"asn_detail_id": str(asn_detail_id), "requested": quantity})

            ownership = await self.engine.guard.validate_ownership(
                DemandLineKind.ASN_DETAIL, asn_id, asn_detail_id, company_id, item_id=item_id
            )
            asn = ownership.document
            if asn.status not in PUTAWAY_ALLOWED_STATUSES:
                raise InvalidDocumentStateError(
                    f"ASN {asn.asn_number} is not ready for putaway (status {asn.status})",
                    context={"asn_id": str(asn.id), "status": asn.status},
                )

            line = ownership.demand_line
            unit_cost = None
            if line.actual_price_per_item and Decimal(line.actual_price_per_item) > 0:
                unit_cost = Decimal(line.actual_price_per_item)

            result = await self.engine.apply_transfer(
                company_id,
                user_id,
                DemandLineKind.ASN_DETAIL,
                asn_id,
                asn_detail_id,
                item_id,
                ownership.holding_location_id,
                destination_location_id,
                quantity,
                unit_cost=unit_cost,
            )
            result.document_status = await self._refresh_asn_status(asn, company_id)

        return result

    async def process_bulk_putaway(
        self,
        company_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        asn_id: uuid.UUID,
        lines: List[BulkPutawayLine],
    ) -> BulkTransferResponse:
        """
        Put away several lines of one ASN.

        Each line is its own unit of work: a rejected line is reported with its
        error and does not undo the lines accepted before it.
        """
        response = BulkTransferResponse(document_id=asn_id)
        for line in lines:
            if line.quantity == 0:
                response.skipped += 1
                continue
            try:
                result = await self.process_putaway(
                    company_id,
                    user_id,
                    asn_id,
                    line.asn_detail_id,
                    line.item_id,
                    line.destination_location_id,
                    line.quantity,
                )
            except InventoryMovementError as e:
                response.failed += 1
                response.results.append(
                    BulkLineResult(demand_line_id=line.asn_detail_id, success=False, error=e.to_dict())
                )
                continue
            response.succeeded += 1
            response.results.append(BulkLineResult(demand_line_id=line.asn_detail_id, success=True, result=result))

        logger.info(
            f"Bulk putaway for ASN {asn_id}: {response.succeeded} accepted, "
            f"{response.failed} rejected, {response.skipped} skipped (user {user_id})"
        )
        return response

    # ==================== SUGGESTIONS ====================

    async def get_putaway_suggestions(
        self,
        company_id: uuid.UUID,
        item_id: uuid.UUID,
        quantity: int,
    ) -> PutawaySuggestionResponse:
        """
        Suggest storage locations that can take quantity more units.

        Active, non-full STORAGE locations with enough free capacity, lowest
        utilization first.
        """
        validate_quantity(quantity, {"item_id": str(item_id), "requested": quantity})

        result = await self.db.execute(
            select(Item.id).where(Item.id == item_id, Item.company_id == company_id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Item not found", context={"item_id": str(item_id)})

        result = await self.db.execute(
            select(Location)
            .where(
                Location.company_id == company_id,
                Location.category == LocationCategory.STORAGE.value,
                Location.is_active == True,
                Location.is_full == False,
                Location.max_capacity > 0,
            )
            .order_by(Location.code)
        )
        locations = [loc for loc in result.scalars().all() if loc.available_capacity >= quantity]
        locations.sort(key=lambda loc: loc.current_capacity / loc.max_capacity)

        return PutawaySuggestionResponse(
            item_id=item_id,
            requested_quantity=quantity,
            suggestions=[
                PutawaySuggestion(
                    location_id=loc.id,
                    location_code=loc.code,
                    max_capacity=loc.max_capacity,
                    current_capacity=loc.current_capacity,
                    available_capacity=loc.available_capacity,
                    utilization_percent=round(loc.current_capacity * 100 / loc.max_capacity, 2),
                )
                for loc in locations
            ],
        )
