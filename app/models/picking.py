"""Picking models for outbound order picking into a holding location."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy import CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, synonym

from app.database import Base


class PickingStatus(str, Enum):
    """Picking status enumeration."""
    PENDING = "PENDING"           # Generated, nothing picked yet
    IN_PROGRESS = "IN_PROGRESS"   # At least one pick accepted
    COMPLETED = "COMPLETED"       # Closed by the picker
    CANCELLED = "CANCELLED"


class PickingDetailStatus(str, Enum):
    """Picking line status enumeration."""
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PICKED = "PICKED"


class Picking(Base):
    """
    Picking document for one sales order.

    Picked stock is moved from storage locations into the picking's holding
    location, where it waits for shipment.
    """
    __tablename__ = "pickings"

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

    picking_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="e.g. PK-<sales order number>"
    )
    sales_order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sales_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    holding_location_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(50),
        default="PENDING",
        nullable=False,
        index=True,
        comment="PENDING, IN_PROGRESS, COMPLETED, CANCELLED"
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Picking(number='{self.picking_number}', status='{self.status}')>"


class PickingDetail(Base):
    """Picking line - the outbound demand line."""
    __tablename__ = "picking_details"
    __table_args__ = (
        CheckConstraint("quantity_picked >= 0", name="ck_picking_detail_picked_non_negative"),
        CheckConstraint("quantity_picked <= quantity_required", name="ck_picking_detail_picked_within_required"),
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
    picking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("pickings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sales_order_detail_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sales_order_details.id", ondelete="RESTRICT"),
        nullable=False
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False
    )

    # Suggested source location
    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True
    )

    # Quantities
    quantity_required: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_picked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(50),
        default="PENDING",
        nullable=False,
        comment="PENDING, PARTIAL, PICKED"
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

    picked_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    picked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    __mapper_args__ = {"version_id_col": version_id}

    # Demand line interface shared with ASN lines
    document_id = synonym("picking_id")
    required_quantity = synonym("quantity_required")
    fulfilled_quantity = synonym("quantity_picked")

    @hybrid_property
    def remaining_quantity(self) -> int:
        """Quantity still to be picked."""
        return self.quantity_required - self.quantity_picked

    def __repr__(self) -> str:
        return f"<PickingDetail(item={self.item_id}, required={self.quantity_required}, picked={self.quantity_picked})>"
