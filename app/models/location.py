"""Warehouse location model with cached capacity."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy import UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class LocationCategory(str, Enum):
    """Location category enumeration."""
    STORAGE = "STORAGE"    # Permanent putaway / pick-face stock
    HOLDING = "HOLDING"    # Temporary staging for one inbound or outbound document
    OTHER = "OTHER"


class Location(Base):
    """
    Physical location inside the warehouse.

    current_capacity is a cache of the summed inventory quantity held here;
    it is maintained by the capacity tracker on every movement and can be
    rebuilt from the ledger by the reconciliation job.
    """
    __tablename__ = "locations"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_location_company_code"),
        CheckConstraint("current_capacity >= 0", name="ck_location_capacity_non_negative"),
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

    code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(
        String(50),
        default="STORAGE",
        nullable=False,
        index=True,
        comment="STORAGE, HOLDING, OTHER"
    )

    # Capacity
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_capacity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Sum of inventory quantity held at this location"
    )
    is_full: Mapped[bool] = mapped_column(Boolean, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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

    @property
    def available_capacity(self) -> int:
        """Get remaining capacity."""
        return max(0, self.max_capacity - self.current_capacity)

    @property
    def is_storage(self) -> bool:
        return self.category == LocationCategory.STORAGE.value

    @property
    def is_holding(self) -> bool:
        return self.category == LocationCategory.HOLDING.value

    def __repr__(self) -> str:
        return f"<Location(code='{self.code}', category='{self.category}', used={self.current_capacity}/{self.max_capacity})>"
