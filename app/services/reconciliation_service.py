"""
Inventory consistency job.

Repairs records whose status disagrees with their quantity and rebuilds every
location's cached capacity from the ledger. Runs on a schedule and on demand.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory import InventoryRecord, InventoryStatus
from app.models.location import Location
from app.schemas.wms import ReconciliationResult
from app.services.location_capacity import LocationCapacityTracker
from app.services.unit_of_work import atomic


logger = logging.getLogger(__name__)


class InventoryReconciliationService:
    """Brings status and capacity caches back in line with quantities."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.capacity = LocationCapacityTracker(db)

    async def run(self, company_id: Optional[uuid.UUID] = None) -> ReconciliationResult:
        """
        Run one consistency pass, for one company or all of them.

        quantity 0 with any status other than EMPTY becomes EMPTY; a positive
        quantity marked EMPTY becomes AVAILABLE.
        """
        summary = ReconciliationResult()

        async with atomic(self.db, "inventory_reconciliation", company_id=str(company_id)):
            query = (
                select(InventoryRecord)
                .where(
                    or_(
                        and_(
                            InventoryRecord.quantity == 0,
                            InventoryRecord.status != InventoryStatus.EMPTY.value,
                        ),
                        and_(
                            InventoryRecord.quantity > 0,
                            InventoryRecord.status == InventoryStatus.EMPTY.value,
                        ),
                    )
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            if company_id:
                query = query.where(InventoryRecord.company_id == company_id)
            result = await self.db.execute(query)
            for record in result.scalars().all():
                summary.statuses_repaired += 1
                if record.quantity == 0:
                    record.status = InventoryStatus.EMPTY.value
                else:
                    record.status = InventoryStatus.AVAILABLE.value
            await self.db.flush()

            count_query = select(func.count(InventoryRecord.id))
            if company_id:
                count_query = count_query.where(InventoryRecord.company_id == company_id)
            result = await self.db.execute(count_query)
            summary.records_checked = int(result.scalar_one())

            location_query = select(Location.id, Location.company_id, Location.current_capacity)
            if company_id:
                location_query = location_query.where(Location.company_id == company_id)
            result = await self.db.execute(location_query)
            for location_id, location_company_id, cached in result.all():
                location = await self.capacity.recalculate(location_id, location_company_id)
                summary.locations_checked += 1
                if location.current_capacity != cached:
                    summary.locations_corrected += 1

        logger.info(
            f"Inventory reconciliation: {summary.statuses_repaired} statuses repaired, "
            f"{summary.locations_corrected}/{summary.locations_checked} locations corrected"
        )
        return summary
