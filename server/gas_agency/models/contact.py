"""Support ticket model definitions."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .user import User


class ContactStatus(str, Enum):
    """Support ticket status enumeration."""
    NEW = "NEW"
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"
    ARCHIVED = "ARCHIVED"


class ContactMessage(Base):
    """A support ticket opened by a customer."""

    __tablename__ = "contact_messages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    priority: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    related_booking_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    preferred_contact: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    status: Mapped[ContactStatus] = mapped_column(
        String(20), nullable=False, default=ContactStatus.NEW, index=True
    )
    last_replied_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="contact_messages")
    replies: Mapped[list["ContactReply"]] = relationship(
        "ContactReply",
        back_populates="message",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ContactReply.created_at",
    )

    def __repr__(self) -> str:
        return f"<ContactMessage(id={self.id}, subject='{self.subject}', status={self.status})>"


class ContactReply(Base):
    """A reply on a support ticket, from staff or the customer."""

    __tablename__ = "contact_replies"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    message_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("contact_messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    author_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, server_default=func.now()
    )

    message: Mapped["ContactMessage"] = relationship("ContactMessage", back_populates="replies")

    def __repr__(self) -> str:
        return f"<ContactReply(id={self.id}, message_id={self.message_id}, is_admin={self.is_admin})>"
