"""FastAPI routers package."""

from .admin_bookings import router as admin_bookings_router
from .admin_deliveries import router as admin_deliveries_router
from .admin_inventory import router as admin_inventory_router
from .admin_users import router as admin_users_router
from .auth import router as auth_router
from .bookings import router as bookings_router
from .contacts import admin_router as admin_contacts_router
from .contacts import router as contacts_router
from .health import router as health_router
from .metrics import router as metrics_router
from .payments import router as payments_router
from .settings import router as settings_router
from .users import router as users_router

__all__ = [
    "admin_bookings_router",
    "admin_contacts_router",
    "admin_deliveries_router",
    "admin_inventory_router",
    "admin_users_router",
    "auth_router",
    "bookings_router",
    "contacts_router",
    "health_router",
    "metrics_router",
    "payments_router",
    "settings_router",
    "users_router",
]
