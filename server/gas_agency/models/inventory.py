"""Cylinder stock, batch and adjustment model definitions."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

DEFAULT_STOCK_ID = "default"


class AdjustmentType(str, Enum):
    """Reason code for a stock adjustment."""
    RECEIVE = "RECEIVE"
    ISSUE = "ISSUE"
    DAMAGE = "DAMAGE"
    AUDIT = "AUDIT"
    CORRECTION = "CORRECTION"


class BatchStatus(str, Enum):
    """Cylinder batch status enumeration."""
    ACTIVE = "ACTIVE"
    DEPLETED = "DEPLETED"
    EXPIRED = "EXPIRED"


class CylinderStock(Base):
    """Running total of cylinders on hand. A single row keyed ``default``."""

    __tablename__ = "cylinder_stock"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=DEFAULT_STOCK_ID)
    total_available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("total_available >= 0", name="ck_stock_total_non_negative"),
    )

    adjustments: Mapped[list["StockAdjustment"]] = relationship(
        "StockAdjustment", back_populates="stock", order_by="StockAdjustment.created_at.desc()"
    )

    def __repr__(self) -> str:
        return f"<CylinderStock(id='{self.id}', total_available={self.total_available})>"


class CylinderBatch(Base):
    """A delivery of cylinders received from a supplier."""

    __tablename__ = "cylinder_batches"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    supplier: Mapped[str] = mapped_column(String(200), nullable=False)
    invoice_no: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    received_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[BatchStatus] = mapped_column(
        String(20), nullable=False, default=BatchStatus.ACTIVE, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_batch_quantity_positive"),
    )

    def __repr__(self) -> str:
        return f"<CylinderBatch(id={self.id}, supplier='{self.supplier}', quantity={self.quantity})>"


class StockAdjustment(Base):
    """Append-only ledger entry for a change to the stock total."""

    __tablename__ = "stock_adjustments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    stock_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("cylinder_stock.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Can be positive or negative
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[AdjustmentType] = mapped_column(String(20), nullable=False)
    actor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    total_before: Mapped[int] = mapped_column(Integer, nullable=False)
    total_after: Mapped[int] = mapped_column(Integer, nullable=False)

    batch_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("cylinder_batches.id", ondelete="SET NULL"), nullable=True, index=True
    )
    booking_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True
    )

    __table_args__ = (
        CheckConstraint("delta != 0", name="ck_stock_adjustment_delta_nonzero"),
        CheckConstraint("length(reason) > 0", name="ck_stock_adjustment_reason_not_empty"),
        CheckConstraint("total_after >= 0", name="ck_stock_adjustment_total_after_non_negative"),
        CheckConstraint(
            "total_after = total_before + delta",
            name="ck_stock_adjustment_total_delta_consistency"
        ),
    )

    stock: Mapped["CylinderStock"] = relationship("CylinderStock", back_populates="adjustments")

    def __repr__(self) -> str:
        return (
            f"<StockAdjustment(id={self.id}, delta={self.delta}, type={self.type}, "
            f"created_at={self.created_at})>"
        )
