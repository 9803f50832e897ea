"""Models module exporting all database models."""

from .booking import Booking, BookingEvent, BookingStatus, PaymentMethod
from .contact import ContactMessage, ContactReply, ContactStatus
from .delivery import AssignmentStatus, DeliveryAssignment, DeliveryPartner
from .inventory import (
    DEFAULT_STOCK_ID,
    AdjustmentType,
    BatchStatus,
    CylinderBatch,
    CylinderStock,
    StockAdjustment,
)
from .payment import Payment, PaymentStatus
from .settings import DEFAULT_SETTINGS_ID, SystemSetting
from .user import User, UserRole

__all__ = [
    # Accounts
    "User",
    "UserRole",

    # Booking entities
    "Booking",
    "BookingEvent",
    "BookingStatus",
    "PaymentMethod",
    "Payment",
    "PaymentStatus",

    # Delivery entities
    "DeliveryPartner",
    "DeliveryAssignment",
    "AssignmentStatus",

    # Inventory entities
    "CylinderStock",
    "CylinderBatch",
    "StockAdjustment",
    "AdjustmentType",
    "BatchStatus",
    "DEFAULT_STOCK_ID",

    # Support
    "ContactMessage",
    "ContactReply",
    "ContactStatus",

    # Settings
    "SystemSetting",
    "DEFAULT_SETTINGS_ID",
]
