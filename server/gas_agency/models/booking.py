"""Booking and booking event model definitions."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .delivery import DeliveryAssignment
    from .payment import Payment
    from .user import User


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    COD = "COD"
    UPI = "UPI"


class Booking(Base):
    """A customer's order for one to three cylinders."""

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Snapshot of the customer at booking time
    user_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    user_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    user_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    payment_method: Mapped[PaymentMethod] = mapped_column(String(10), nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    receiver_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    receiver_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    requested_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    expected_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    delivery_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_booking_quantity_positive"),
        CheckConstraint("quantity <= 3", name="ck_booking_quantity_max"),
    )

    user: Mapped["User"] = relationship("User", back_populates="bookings")
    events: Mapped[list["BookingEvent"]] = relationship(
        "BookingEvent",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BookingEvent.created_at",
    )
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Payment.created_at.desc()",
    )
    assignment: Mapped[Optional["DeliveryAssignment"]] = relationship(
        "DeliveryAssignment",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    @property
    def latest_payment(self) -> Optional["Payment"]:
        """Newest payment; requires ``payments`` to be loaded."""
        return self.payments[0] if self.payments else None

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, user_id={self.user_id}, quantity={self.quantity}, "
            f"status={self.status}, payment_method={self.payment_method})>"
        )


class BookingEvent(Base):
    """Append-only history entry for a booking."""

    __tablename__ = "booking_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    status: Mapped[BookingStatus] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="events")

    def __repr__(self) -> str:
        return f"<BookingEvent(booking_id={self.booking_id}, status={self.status}, title='{self.title}')>"
