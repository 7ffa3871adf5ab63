"""Read-only inventory and document progress views."""
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory import InventoryRecord
from app.models.location import Location
from app.models.picking import Picking, PickingDetail
from app.models.purchase import AdvancedShippingNotice, ASNDetail
from app.schemas.wms import DemandLineProgressRow, DocumentProgressResponse, InventorySnapshotRow
from app.services.errors import NotFoundError


class InventoryQueryService:
    """Diagnostic views over the ledger and document lines."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_inventory_snapshot(
        self,
        company_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> List[InventorySnapshotRow]:
        """Every location record of an item, by location code."""
        result = await self.db.execute(
            select(InventoryRecord, Location)
            .join(Location, Location.id == InventoryRecord.location_id)
            .where(
                InventoryRecord.company_id == company_id,
                InventoryRecord.item_id == item_id,
            )
            .order_by(Location.code)
        )
        return [
            InventorySnapshotRow(
                location_id=location.id,
                location_code=location.code,
                category=location.category,
                quantity=record.quantity,
                status=record.status,
                last_cost_price=record.last_cost_price,
                source_reference=record.source_reference,
            )
            for record, location in result.all()
        ]

    async def get_demand_line_progress(
        self,
        company_id: uuid.UUID,
        document_id: uuid.UUID,
    ) -> DocumentProgressResponse:
        """Line progress of an ASN or a picking, whichever the id belongs to."""
        for document_model, line_model, document_type in (
            (AdvancedShippingNotice, ASNDetail, "ASN"),
            (Picking, PickingDetail, "PICKING"),
        ):
            result = await self.db.execute(
                select(document_model).where(
                    document_model.id == document_id,
                    document_model.company_id == company_id,
                    document_model.is_deleted == False,
                )
            )
            document = result.scalar_one_or_none()
            if not document:
                continue

            result = await self.db.execute(
                select(line_model)
                .where(
                    line_model.document_id == document.id,
                    line_model.company_id == company_id,
                    line_model.is_deleted == False,
                )
                .order_by(line_model.created_at)
            )
            lines = [
                DemandLineProgressRow(
                    line_id=line.id,
                    item_id=line.item_id,
                    required=line.required_quantity,
                    fulfilled=line.fulfilled_quantity,
                    remaining=line.remaining_quantity,
                    status=line.status,
                )
                for line in result.scalars().all()
            ]
            return DocumentProgressResponse(
                document_id=document.id,
                document_type=document_type,
                status=document.status,
                lines=lines,
            )

        raise NotFoundError("Document not found", context={"document_id": str(document_id)})
