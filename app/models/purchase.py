"""Inbound models: Purchase Order -> Advanced Shipping Notice -> ASN lines.

ASN lines are the inbound demand lines: shipped_quantity is what must be put
away, already_put_away_quantity is what has been moved into storage so far.
"""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Numeric, Date
from sqlalchemy import CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, synonym

from app.database import Base


# ==================== Enums ====================

class POStatus(str, Enum):
    """Purchase Order status."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    RECEIVED = "RECEIVED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class ASNStatus(str, Enum):
    """Advanced Shipping Notice status."""
    IN_TRANSIT = "IN_TRANSIT"    # Shipped by vendor, not yet at the dock
    ARRIVED = "ARRIVED"          # Stock received into the holding location
    PROCESSED = "PROCESSED"
    PUT_AWAY = "PUT_AWAY"        # Putaway started, some lines still open
    COMPLETED = "COMPLETED"      # Every line fully put away
    CANCELLED = "CANCELLED"


class ASNDetailStatus(str, Enum):
    """ASN line putaway status."""
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    COMPLETE = "COMPLETE"


# ==================== Purchase Order ====================

class PurchaseOrder(Base):
    """Purchase Order - the upstream document of an ASN."""
    __tablename__ = "purchase_orders"

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

    po_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    po_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        default="DRAFT",
        nullable=False,
        index=True,
        comment="DRAFT, SENT, RECEIVED, CLOSED, CANCELLED"
    )

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

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

    def __repr__(self) -> str:
        return f"<PurchaseOrder(number='{self.po_number}', status='{self.status}')>"


# ==================== Advanced Shipping Notice ====================

class AdvancedShippingNotice(Base):
    """
    ASN - vendor shipment against one purchase order.

    On arrival the shipped quantities land in the ASN's holding location and
    are then put away line by line into storage locations.
    """
    __tablename__ = "advanced_shipping_notices"

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

    asn_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("purchase_orders.id", ondelete="RESTRICT"),
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
        default="IN_TRANSIT",
        nullable=False,
        index=True,
        comment="IN_TRANSIT, ARRIVED, PROCESSED, PUT_AWAY, COMPLETED, CANCELLED"
    )

    # Dates
    expected_arrival_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    actual_arrival_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

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

    def __repr__(self) -> str:
        return f"<AdvancedShippingNotice(number='{self.asn_number}', status='{self.status}')>"


class ASNDetail(Base):
    """ASN line - one item shipped on the notice."""
    __tablename__ = "asn_details"
    __table_args__ = (
        CheckConstraint("already_put_away_quantity >= 0", name="ck_asn_detail_put_away_non_negative"),
        CheckConstraint(
            "already_put_away_quantity <= shipped_quantity",
            name="ck_asn_detail_put_away_within_shipped"
        ),
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
    asn_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("advanced_shipping_notices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False
    )

    # Quantities
    shipped_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    already_put_away_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Unit cost on the shipment; 0 means fall back to the item's cost price
    actual_price_per_item: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))

    status: Mapped[str] = mapped_column(
        String(50),
        default="PENDING",
        nullable=False,
        comment="PENDING, PARTIAL, COMPLETE"
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

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

    # Demand line interface shared with picking lines
    document_id = synonym("asn_id")
    required_quantity = synonym("shipped_quantity")
    fulfilled_quantity = synonym("already_put_away_quantity")

    @hybrid_property
    def remaining_quantity(self) -> int:
        """Quantity still to be put away."""
        return self.shipped_quantity - self.already_put_away_quantity

    def __repr__(self) -> str:
        return f"<ASNDetail(item={self.item_id}, shipped={self.shipped_quantity}, put_away={self.already_put_away_quantity})>"
