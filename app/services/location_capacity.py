"""Location capacity tracking: validates and maintains locations.current_capacity."""
import logging
import uuid
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory import InventoryRecord
from app.models.location import Location
from app.services.errors import NotFoundError, CapacityExceededError


logger = logging.getLogger(__name__)


class LocationCapacityTracker:
    """
    Keeps each location's cached used capacity in step with the ledger.

    0 <= current_capacity <= max_capacity holds after every apply_delta;
    is_full is recomputed alongside.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_location(
        self,
        location_id: uuid.UUID,
        company_id: uuid.UUID,
        for_update: bool = True,
    ) -> Optional[Location]:
        """Load a company's location, refreshed from the database."""
        query = (
            select(Location)
            .where(
                Location.id == location_id,
                Location.company_id == company_id,
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _require_location(self, location_id: uuid.UUID, company_id: uuid.UUID) -> Location:
        location = await self.get_location(location_id, company_id)
        if not location:
            raise NotFoundError(
                "Location not found",
                context={"location_id": str(location_id)},
            )
        return location

    async def check_capacity(
        self,
        location_id: uuid.UUID,
        additional_quantity: int,
        company_id: uuid.UUID,
    ) -> Location:
        """
        Validate that a location can take additional_quantity more units.

        Raises:
            NotFoundError: location does not exist for the company
            CapacityExceededError: current + additional > max
        """
        location = await self._require_location(location_id, company_id)
        if location.current_capacity + additional_quantity > location.max_capacity:
            raise CapacityExceededError(
                f"Location {location.code} cannot take {additional_quantity} more: "
                f"{location.current_capacity}/{location.max_capacity} used",
                context={
                    "location_id": str(location.id),
                    "location_code": location.code,
                    "requested": additional_quantity,
                    "current_capacity": location.current_capacity,
                    "max_capacity": location.max_capacity,
                    "available": location.available_capacity,
                },
            )
        return location

    async def apply_delta(
        self,
        location_id: uuid.UUID,
        delta: int,
        company_id: uuid.UUID,
    ) -> Location:
        """Add delta (negative for outbound) to the location's used capacity."""
        location = await self._require_location(location_id, company_id)
        new_capacity = location.current_capacity + delta
        if new_capacity < 0 or new_capacity > location.max_capacity:
            raise CapacityExceededError(
                f"Capacity change of {delta} would leave location {location.code} "
                f"at {new_capacity}/{location.max_capacity}",
                context={
                    "location_id": str(location.id),
                    "location_code": location.code,
                    "delta": delta,
                    "current_capacity": location.current_capacity,
                    "max_capacity": location.max_capacity,
                },
            )
        location.current_capacity = new_capacity
        location.is_full = new_capacity >= location.max_capacity
        await self.db.flush()
        return location

    async def recalculate(self, location_id: uuid.UUID, company_id: uuid.UUID) -> Location:
        """Rebuild the cached capacity from the sum of inventory held at the location."""
        location = await self._require_location(location_id, company_id)
        result = await self.db.execute(
            select(func.coalesce(func.sum(InventoryRecord.quantity), 0)).where(
                InventoryRecord.company_id == company_id,
                InventoryRecord.location_id == location_id,
            )
        )
        used = int(result.scalar_one())
        if used != location.current_capacity:
            logger.warning(
                f"Location {location.code} capacity cache {location.current_capacity} "
                f"differs from ledger total {used}; correcting"
            )
        location.current_capacity = used
        location.is_full = used >= location.max_capacity
        await self.db.flush()
        return location
