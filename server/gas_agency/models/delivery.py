"""Delivery partner and assignment model definitions."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .booking import Booking


class AssignmentStatus(str, Enum):
    """Delivery assignment status enumeration."""
    ASSIGNED = "ASSIGNED"
    PICKED_UP = "PICKED_UP"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class DeliveryPartner(Base):
    """Person or vendor that delivers cylinders."""

    __tablename__ = "delivery_partners"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vehicle_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    service_area: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    capacity_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("capacity_per_day > 0", name="ck_partner_capacity_positive"),
    )

    assignments: Mapped[list["DeliveryAssignment"]] = relationship(
        "DeliveryAssignment", back_populates="partner"
    )

    def __repr__(self) -> str:
        return f"<DeliveryPartner(id={self.id}, name='{self.name}', active={self.is_active})>"


class DeliveryAssignment(Base):
    """Links a booking to the partner delivering it. At most one per booking."""

    __tablename__ = "delivery_assignments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )
    partner_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("delivery_partners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    status: Mapped[AssignmentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=AssignmentStatus.ASSIGNED,
        index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="normal")
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    scheduled_time: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    assigned_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="assignment")
    partner: Mapped["DeliveryPartner"] = relationship("DeliveryPartner", back_populates="assignments")

    def __repr__(self) -> str:
        return (
            f"<DeliveryAssignment(id={self.id}, booking_id={self.booking_id}, "
            f"partner_id={self.partner_id}, status={self.status})>"
        )
