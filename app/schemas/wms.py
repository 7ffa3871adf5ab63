"""Pydantic schemas for putaway, picking and inventory views."""
from pydantic import Field

from app.schemas.base import BaseResponseSchema, BaseCreateSchema
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid


# ==================== TRANSFER SCHEMAS ====================

class TransferResult(BaseResponseSchema):
    """Outcome of one accepted stock transfer."""
    document_id: uuid.UUID
    demand_line_id: uuid.UUID
    item_id: uuid.UUID
    source_location_id: uuid.UUID
    destination_location_id: uuid.UUID
    quantity: int
    required_quantity: int
    fulfilled_quantity: int
    remaining_quantity: int
    line_status: str
    is_complete: bool
    source_quantity_after: int
    destination_quantity_after: int
    document_status: Optional[str] = None


class PutawayRequest(BaseCreateSchema):
    """Move a quantity of an ASN line from the ASN holding location into storage."""
    asn_id: uuid.UUID
    asn_detail_id: uuid.UUID
    item_id: uuid.UUID
    destination_location_id: uuid.UUID
    quantity: int


class PickingItemRequest(BaseCreateSchema):
    """Pick a quantity of a picking line from a storage location."""
    picking_detail_id: uuid.UUID
    source_location_id: uuid.UUID
    quantity: int


# ==================== BULK SCHEMAS ====================

class BulkPutawayLine(BaseCreateSchema):
    asn_detail_id: uuid.UUID
    item_id: uuid.UUID
    destination_location_id: uuid.UUID
    quantity: int


class BulkPutawayRequest(BaseCreateSchema):
    """Several putaway lines of one ASN; lines with quantity 0 are skipped."""
    asn_id: uuid.UUID
    lines: List[BulkPutawayLine] = Field(..., min_length=1)


class BulkPickingRequest(BaseCreateSchema):
    """Several picks of one picking; lines with quantity 0 are skipped."""
    lines: List[PickingItemRequest] = Field(..., min_length=1)


class BulkLineResult(BaseResponseSchema):
    demand_line_id: uuid.UUID
    success: bool
    result: Optional[TransferResult] = None
    error: Optional[dict] = None


class BulkTransferResponse(BaseResponseSchema):
    """Outcome per line; each line is committed or rejected on its own."""
    document_id: uuid.UUID
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    results: List[BulkLineResult] = []


# ==================== ASN SCHEMAS ====================

class ASNReceiptResponse(BaseResponseSchema):
    """ASN arrival result."""
    asn_id: uuid.UUID
    status: str
    holding_location_id: uuid.UUID
    actual_arrival_date: Optional[datetime] = None
    lines_received: int
    total_quantity: int


# ==================== PICKING SCHEMAS ====================

class GeneratePickingRequest(BaseCreateSchema):
    """Request to generate a picking for a confirmed sales order."""
    holding_location_id: uuid.UUID
    notes: Optional[str] = None


class PickingLineResponse(BaseResponseSchema):
    id: uuid.UUID
    sales_order_detail_id: uuid.UUID
    item_id: uuid.UUID
    location_id: Optional[uuid.UUID] = None
    quantity_required: int
    quantity_picked: int
    remaining_quantity: int
    status: str


class PickingResponse(BaseResponseSchema):
    """Picking response schema."""
    id: uuid.UUID
    picking_number: str
    sales_order_id: uuid.UUID
    holding_location_id: uuid.UUID
    status: str
    completed_date: Optional[datetime] = None
    created_at: datetime
    lines: List[PickingLineResponse] = []


class PickingCompletionResponse(BaseResponseSchema):
    picking_id: uuid.UUID
    status: str
    completed_date: Optional[datetime] = None
    sales_order_id: uuid.UUID
    sales_order_status: str
    fully_picked: bool


class LocationSuggestion(BaseResponseSchema):
    """Storage location suggested for picking, oldest stock first."""
    location_id: uuid.UUID
    location_code: str
    available_quantity: int
    suggested_quantity: int
    last_updated: Optional[datetime] = None


class LocationSuggestionResponse(BaseResponseSchema):
    item_id: uuid.UUID
    requested_quantity: int
    suggested_total: int
    is_fully_covered: bool
    suggestions: List[LocationSuggestion] = []


class PutawaySuggestion(BaseResponseSchema):
    """Storage location with room for a putaway, least utilized first."""
    location_id: uuid.UUID
    location_code: str
    max_capacity: int
    current_capacity: int
    available_capacity: int
    utilization_percent: float


class PutawaySuggestionResponse(BaseResponseSchema):
    item_id: uuid.UUID
    requested_quantity: int
    suggestions: List[PutawaySuggestion] = []


# ==================== INVENTORY VIEW SCHEMAS ====================

class InventorySnapshotRow(BaseResponseSchema):
    """One (item, location) record of the inventory ledger."""
    location_id: uuid.UUID
    location_code: str
    category: str
    quantity: int
    status: str
    last_cost_price: Decimal = Field(default=Decimal("0"))
    source_reference: Optional[str] = None


class DemandLineProgressRow(BaseResponseSchema):
    line_id: uuid.UUID
    item_id: uuid.UUID
    required: int
    fulfilled: int
    remaining: int
    status: str


class DocumentProgressResponse(BaseResponseSchema):
    """Progress of every line on an ASN or a picking."""
    document_id: uuid.UUID
    document_type: str
    status: str
    lines: List[DemandLineProgressRow] = []


class ReconciliationResult(BaseResponseSchema):
    """Counts from one inventory consistency run."""
    records_checked: int = 0
    statuses_repaired: int = 0
    locations_checked: int = 0
    locations_corrected: int = 0
