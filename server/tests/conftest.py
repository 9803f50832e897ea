"""Test configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("EMAIL_ENABLED", "false")

from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gas_agency.core.database import Base, get_db
from gas_agency.core.security import create_access_token, hash_password
from gas_agency.models import *  # noqa: F403 - Import all models
from gas_agency.services.notification_service import NotificationService, get_notification_service

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "s3cret-pass"


class RecordingNotifier(NotificationService):
    """Keeps every outgoing email instead of talking to SMTP."""

    def __init__(self):
        super().__init__()
        self.sent = []

    async def send_email(self, to, subject, text, attachments=(), template="generic"):
        if not to:
            return False
        self.sent.append({
            "to": to,
            "subject": subject,
            "text": text,
            "template": template,
            "attachments": [a.filename for a in attachments],
        })
        return True

    def templates(self):
        return [m["template"] for m in self.sent]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, notifier):
    """Create a test FastAPI application."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError

    from gas_agency.core.exceptions import (
        ProblemDetailsException,
        generic_exception_handler,
        problem_details_handler,
        request_validation_handler,
    )
    from gas_agency.routers import (
        admin_bookings,
        admin_deliveries,
        admin_inventory,
        admin_users,
        auth,
        bookings,
        contacts,
        health,
        metrics,
        payments,
        settings,
        users,
    )

    # Create a simplified test app without lifespan
    app = FastAPI(
        title="Gas Agency API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(bookings.router)
    app.include_router(payments.router)
    app.include_router(contacts.router)
    app.include_router(settings.router)
    app.include_router(admin_bookings.router)
    app.include_router(admin_deliveries.router)
    app.include_router(admin_inventory.router)
    app.include_router(admin_users.router)
    app.include_router(contacts.admin_router)
    app.include_router(metrics.router)

    async def override_get_db():
        try:
            yield test_session
        except Exception:
            await test_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_service] = lambda: notifier

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _create_user(session, **overrides) -> User:  # noqa: F405
    fields = {
        "email": "asha@example.com",
        "name": "Asha Rao",
        "user_id": "asha",
        "phone": "9876543210",
        "address": "12 MG Road, Bengaluru",
        "role": UserRole.USER,  # noqa: F405
        "remaining_quota": 12,
        "password_hash": hash_password(TEST_PASSWORD),
        "email_verified": True,
    }
    fields.update(overrides)
    user = User(**fields)  # noqa: F405
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def customer(test_session):
    return await _create_user(test_session)


@pytest_asyncio.fixture
async def other_customer(test_session):
    return await _create_user(
        test_session, email="vikram@example.com", name="Vikram Singh", user_id="vikram", phone="9123456780"
    )


@pytest_asyncio.fixture
async def admin(test_session):
    return await _create_user(
        test_session,
        email="admin@example.com",
        name="Admin",
        user_id="admin",
        role=UserRole.ADMIN,  # noqa: F405
        remaining_quota=0,
    )


def auth_headers(user) -> dict:
    token = create_access_token(str(user.id), user.role, user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def other_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest_asyncio.fixture
async def partner(test_session):
    partner = DeliveryPartner(name="Ravi Kumar", phone="9876500000", service_area="North")  # noqa: F405
    test_session.add(partner)
    await test_session.commit()
    await test_session.refresh(partner)
    return partner


@pytest.fixture
def sample_booking_data():
    """Sample COD booking request body."""
    return {
        "payment_method": "COD",
        "quantity": 1,
        "receiver_name": "Asha Rao",
        "receiver_phone": "9876543210",
        "expected_date": (date.today() + timedelta(days=2)).isoformat(),
        "notes": "Call before arriving",
    }


@pytest.fixture
def sample_upi_booking_data(sample_booking_data):
    return {**sample_booking_data, "payment_method": "UPI", "upi_txn_id": "UPI123456789"}
