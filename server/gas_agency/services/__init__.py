"""Service layer package."""

from .auth_service import AuthService
from .booking_service import BookingService
from .contact_service import ContactService
from .delivery_service import DeliveryService
from .export_service import ExportService
from .inventory_service import InventoryService
from .notification_service import NotificationService, get_notification_service
from .payment_service import PaymentService
from .settings_service import SettingsService
from .user_service import UserService

__all__ = [
    "AuthService",
    "BookingService",
    "ContactService",
    "DeliveryService",
    "ExportService",
    "InventoryService",
    "NotificationService",
    "PaymentService",
    "SettingsService",
    "UserService",
    "get_notification_service",
]
