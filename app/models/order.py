"""Outbound sales order models."""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Numeric, Date
from sqlalchemy import CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class SalesOrderStatus(str, Enum):
    """Sales order status enumeration."""
    DRAFT = "DRAFT"                   # Being prepared
    CONFIRMED = "CONFIRMED"           # Accepted, ready for picking
    PICKING = "PICKING"               # Picking generated / in progress
    READY_TO_SHIP = "READY_TO_SHIP"   # All lines picked into holding
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Allowed lifecycle moves
SALES_ORDER_TRANSITIONS = {
    SalesOrderStatus.DRAFT.value: {SalesOrderStatus.CONFIRMED.value, SalesOrderStatus.CANCELLED.value},
    SalesOrderStatus.CONFIRMED.value: {SalesOrderStatus.PICKING.value, SalesOrderStatus.CANCELLED.value},
    SalesOrderStatus.PICKING.value: {SalesOrderStatus.READY_TO_SHIP.value},
    SalesOrderStatus.READY_TO_SHIP.value: {SalesOrderStatus.SHIPPED.value},
    SalesOrderStatus.SHIPPED.value: {SalesOrderStatus.COMPLETED.value},
    SalesOrderStatus.COMPLETED.value: set(),
    SalesOrderStatus.CANCELLED.value: set(),
}


def can_transition(current: str, target: str) -> bool:
    """Check if a sales order may move from current to target status."""
    return target in SALES_ORDER_TRANSITIONS.get(current, set())


class SalesOrder(Base):
    """Sales order - the upstream document of a picking."""
    __tablename__ = "sales_orders"

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

    order_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    order_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        default="DRAFT",
        nullable=False,
        index=True,
        comment="DRAFT, CONFIRMED, PICKING, READY_TO_SHIP, SHIPPED, COMPLETED, CANCELLED"
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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
        return f"<SalesOrder(number='{self.order_number}', status='{self.status}')>"


class SalesOrderDetail(Base):
    """Sales order line."""
    __tablename__ = "sales_order_details"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sales_order_detail_quantity_positive"),
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
    sales_order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sales_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<SalesOrderDetail(item={self.item_id}, qty={self.quantity})>"
