"""
Ownership guard for document lines.

Before any stock moves, the line named by the caller is re-read and its whole
parent chain resolved from the database:

    ASN line     -> ASN     -> Purchase Order
    Picking line -> Picking -> Sales Order
                 -> Sales Order line -> Sales Order (must be the same one)

A line that resolves to a different parent than the caller declared is
rejected, so an operation on one order can never touch another order's lines.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.order import SalesOrder, SalesOrderDetail
from app.models.picking import Picking
from app.models.purchase import AdvancedShippingNotice, PurchaseOrder
from app.services.errors import NotFoundError, OwnershipMismatchError
from app.services.progress_tracker import DemandLine, DemandLineKind, LineProgressTracker


logger = logging.getLogger(__name__)


ParentDocument = Union[AdvancedShippingNotice, Picking]


def document_query(kind: DemandLineKind, document_id: uuid.UUID, company_id: uuid.UUID) -> Select:
    """Row-locked read of a line's parent document."""
    model = AdvancedShippingNotice if kind == DemandLineKind.ASN_DETAIL else Picking
    return (
        select(model)
        .where(
            model.id == document_id,
            model.company_id == company_id,
            model.is_deleted == False,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )


@dataclass
class OwnershipResult:
    """Freshly resolved ownership chain of a document line."""
    kind: DemandLineKind
    document: ParentDocument
    demand_line: DemandLine
    upstream_document_id: uuid.UUID
    holding_location_id: uuid.UUID


class OwnershipGuard:
    """Validates a document line's parent chain, locking the parent document."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.progress = LineProgressTracker(db)

    async def _get_document(
        self,
        kind: DemandLineKind,
        document_id: uuid.UUID,
        company_id: uuid.UUID,
    ) -> Optional[ParentDocument]:
        result = await self.db.execute(document_query(kind, document_id, company_id))
        return result.scalar_one_or_none()

    async def _get_upstream_id(
        self,
        kind: DemandLineKind,
        document: ParentDocument,
        company_id: uuid.UUID,
    ) -> Optional[uuid.UUID]:
        if kind == DemandLineKind.ASN_DETAIL:
            model, upstream_id = PurchaseOrder, document.purchase_order_id
        else:
            model, upstream_id = SalesOrder, document.sales_order_id
        result = await self.db.execute(
            select(model.id).where(
                model.id == upstream_id,
                model.company_id == company_id,
                model.is_deleted == False,
            )
        )
        return result.scalar_one_or_none()

    async def validate_ownership(
        self,
        kind: DemandLineKind,
        document_id: uuid.UUID,
        demand_line_id: uuid.UUID,
        company_id: uuid.UUID,
        expected_upstream_id: Optional[uuid.UUID] = None,
        item_id: Optional[uuid.UUID] = None,
    ) -> OwnershipResult:
        """
        Resolve and check the ownership chain of a document line.

        Args:
            kind: ASN line or picking line
            document_id: ASN / picking the caller believes owns the line
            demand_line_id: Line to be fulfilled
            company_id: Caller's company
            expected_upstream_id: Purchase / sales order the caller believes is upstream
            item_id: Item the caller intends to move

        Raises:
            NotFoundError: document, line or upstream order missing for the company
            OwnershipMismatchError: any link of the chain points elsewhere
        """
        context = {
            "document_id": str(document_id),
            "demand_line_id": str(demand_line_id),
            "kind": kind.value,
        }

        document = await self._get_document(kind, document_id, company_id)
        if not document:
            raise NotFoundError("Document not found", context=context)

        line = await self.progress.get_demand_line(kind, demand_line_id, company_id)
        if not line:
            raise NotFoundError("Document line not found", context=context)

        if line.document_id != document.id:
            raise OwnershipMismatchError(
                "Line does not belong to the given document",
                context={**context, "actual_document_id": str(line.document_id)},
            )

        upstream_id = await self._get_upstream_id(kind, document, company_id)
        if not upstream_id:
            raise NotFoundError(
                "Purchase order not found" if kind == DemandLineKind.ASN_DETAIL else "Sales order not found",
                context=context,
            )

        if kind == DemandLineKind.PICKING_DETAIL:
            result = await self.db.execute(
                select(SalesOrderDetail.sales_order_id).where(
                    SalesOrderDetail.id == line.sales_order_detail_id,
                    SalesOrderDetail.company_id == company_id,
                    SalesOrderDetail.is_deleted == False,
                )
            )
            order_of_line = result.scalar_one_or_none()
            if order_of_line is None:
                raise NotFoundError("Sales order line not found", context=context)
            if order_of_line != upstream_id:
                raise OwnershipMismatchError(
                    "Picking line refers to a different sales order than its picking",
                    context={
                        **context,
                        "picking_sales_order_id": str(upstream_id),
                        "line_sales_order_id": str(order_of_line),
                    },
                )

        if expected_upstream_id is not None and expected_upstream_id != upstream_id:
            raise OwnershipMismatchError(
                "Document belongs to a different order",
                context={
                    **context,
                    "expected_upstream_id": str(expected_upstream_id),
                    "actual_upstream_id": str(upstream_id),
                },
            )

        if item_id is not None and item_id != line.item_id:
            raise OwnershipMismatchError(
                "Item does not match the document line",
                context={**context, "item_id": str(item_id), "line_item_id": str(line.item_id)},
            )

        return OwnershipResult(
            kind=kind,
            document=document,
            demand_line=line,
            upstream_document_id=upstream_id,
            holding_location_id=document.holding_location_id,
        )
