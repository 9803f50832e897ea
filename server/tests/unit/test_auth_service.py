"""Unit tests for registration, login and password reset."""

from datetime import datetime, timedelta

import pytest

from gas_agency.core.exceptions import AuthenticationError, AuthorizationError, ConflictError, ValidationError
from gas_agency.core.security import decode_access_token, verify_password
from gas_agency.schemas.user import RegisterRequest, ResetPasswordRequest
from gas_agency.services.auth_service import FORGOT_PASSWORD_MESSAGE, AuthService

TEST_PASSWORD = "s3cret-pass"


def _register_request(**overrides) -> RegisterRequest:
    fields = {
        "name": "Meena Iyer",
        "user_id": "meena",
        "email": "Meena@Example.com",
        "phone": "9988776655",
        "address": "4 Lake View, Chennai",
        "password": "long-enough-pw",
    }
    fields.update(overrides)
    return RegisterRequest(**fields)


@pytest.mark.asyncio
async def test_register_creates_unverified_customer(test_session, notifier):
    user = await AuthService(test_session, notifier).register(_register_request())

    assert user.email == "meena@example.com"
    assert user.email_verified is False
    assert user.remaining_quota == 12
    assert user.email_verification_token
    assert verify_password("long-enough-pw", user.password_hash)
    assert notifier.templates() == ["verify_email"]


@pytest.mark.asyncio
async def test_register_duplicate_email(test_session, customer, notifier):
    with pytest.raises(ConflictError) as exc_info:
        await AuthService(test_session, notifier).register(_register_request(email="asha@example.com"))
    assert exc_info.value.problem_details["field"] == "email"
    assert exc_info.value.problem_details["code"] == "EMAIL_EXISTS"
    assert exc_info.value.problem_details["status"] == 409


@pytest.mark.asyncio
async def test_register_duplicate_user_id(test_session, customer, notifier):
    with pytest.raises(ConflictError) as exc_info:
        await AuthService(test_session, notifier).register(_register_request(user_id="asha"))
    assert exc_info.value.problem_details["field"] == "user_id"
    assert exc_info.value.problem_details["code"] == "USER_ID_EXISTS"


@pytest.mark.asyncio
async def test_login_with_email_or_user_id(test_session, customer, notifier):
    service = AuthService(test_session, notifier)

    token, user = await service.login("ASHA@example.com", TEST_PASSWORD)
    assert user.id == customer.id
    payload = decode_access_token(token)
    assert payload["sub"] == str(customer.id)
    assert payload["role"] == "USER"

    _, user = await service.login("asha", TEST_PASSWORD)
    assert user.id == customer.id


@pytest.mark.asyncio
async def test_login_wrong_password(test_session, customer, notifier):
    with pytest.raises(AuthenticationError):
        await AuthService(test_session, notifier).login("asha", "not-the-password")


@pytest.mark.asyncio
async def test_unverified_customer_cannot_login(test_session, notifier):
    service = AuthService(test_session, notifier)
    await service.register(_register_request())

    with pytest.raises(AuthorizationError):
        await service.login("meena", "long-enough-pw")


@pytest.mark.asyncio
async def test_verify_email_then_login(test_session, notifier):
    service = AuthService(test_session, notifier)
    user = await service.register(_register_request())
    token = user.email_verification_token

    user = await service.verify_email(token)
    assert user.email_verified is True
    assert user.email_verification_token is None

    _, logged_in = await service.login("meena", "long-enough-pw")
    assert logged_in.id == user.id

    with pytest.raises(ValidationError):
        await service.verify_email(token)


@pytest.mark.asyncio
async def test_expired_verification_token(test_session, notifier):
    service = AuthService(test_session, notifier)
    user = await service.register(_register_request())
    user.email_verification_expiry = datetime.utcnow() - timedelta(minutes=1)
    await test_session.commit()

    with pytest.raises(ValidationError):
        await service.verify_email(user.email_verification_token)


@pytest.mark.asyncio
async def test_resend_verification(test_session, customer, notifier):
    service = AuthService(test_session, notifier)
    user = await service.register(_register_request())
    first_token = user.email_verification_token

    await service.resend_verification("meena@example.com")
    assert user.email_verification_token != first_token
    assert notifier.templates() == ["verify_email", "verify_email"]

    with pytest.raises(ValidationError):
        await service.resend_verification(customer.email)


@pytest.mark.asyncio
async def test_forgot_password_does_not_reveal_accounts(test_session, customer, notifier):
    service = AuthService(test_session, notifier)

    assert await service.forgot_password("nobody@example.com") == FORGOT_PASSWORD_MESSAGE
    assert notifier.sent == []

    assert await service.forgot_password(customer.email) == FORGOT_PASSWORD_MESSAGE
    assert notifier.templates() == ["password_reset"]
    assert customer.reset_token


@pytest.mark.asyncio
async def test_reset_password(test_session, customer, notifier):
    service = AuthService(test_session, notifier)
    await service.forgot_password(customer.email)
    token = customer.reset_token

    await service.validate_reset_token(token)
    await service.reset_password(ResetPasswordRequest(token=token, password="brand-new-pass"))

    assert customer.reset_token is None
    _, user = await service.login("asha", "brand-new-pass")
    assert user.id == customer.id

    with pytest.raises(ValidationError):
        await service.validate_reset_token(token)
