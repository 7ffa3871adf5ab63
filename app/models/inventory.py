"""Inventory ledger models: per-location stock records and movement history."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy import UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class InventoryStatus(str, Enum):
    """Inventory record status enumeration."""
    AVAILABLE = "AVAILABLE"    # Ready for allocation/picking
    RESERVED = "RESERVED"      # Held for an order
    DAMAGED = "DAMAGED"        # Damaged, needs inspection
    QUARANTINE = "QUARANTINE"  # In quality hold
    BLOCKED = "BLOCKED"        # Manually blocked
    EMPTY = "EMPTY"            # Quantity is zero


# Statuses a transfer may draw stock from
MOVABLE_STATUSES = (InventoryStatus.AVAILABLE.value,)


class InventoryRecord(Base):
    """
    Quantity of one item at one location for one company.

    quantity == 0 if and only if status == EMPTY. Both fields are only ever
    written together by the inventory ledger.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        UniqueConstraint("company_id", "item_id", "location_id", name="uq_inventory_company_item_location"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    location_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(50),
        default="AVAILABLE",
        nullable=False,
        index=True,
        comment="AVAILABLE, RESERVED, DAMAGED, QUARANTINE, BLOCKED, EMPTY"
    )

    # Weighted average unit cost
    last_cost_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))

    source_reference: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Document that last brought stock here e.g. ASN-<id>-<line>"
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_empty(self) -> bool:
        return self.quantity == 0

    def __repr__(self) -> str:
        return f"<InventoryRecord(item={self.item_id}, location={self.location_id}, qty={self.quantity}, status='{self.status}')>"


class StockMovementType(str, Enum):
    """Stock movement type enumeration."""
    RECEIPT = "RECEIPT"    # ASN arrival into holding
    PUTAWAY = "PUTAWAY"    # Holding -> storage
    PICK = "PICK"          # Storage -> holding


class StockMovement(Base):
    """Append-only stock movement history."""
    __tablename__ = "stock_movements"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    movement_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="RECEIPT, PUTAWAY, PICK"
    )
    movement_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    from_location_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=True
    )
    to_location_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))

    # Related documents
    document_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    demand_line_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<StockMovement(type='{self.movement_type}', qty={self.quantity})>"
