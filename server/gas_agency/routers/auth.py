"""Authentication router: registration, login, verification and password reset."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException
from ..schemas.common import MessageResponse
from ..schemas.user import (
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenRequest,
    TokenResponse,
    UserProfile,
)
from ..services.auth_service import AuthService
from ..services.notification_service import NotificationService, get_notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

DB_DEPENDENCY = Depends(get_db)
NOTIFIER_DEPENDENCY = Depends(get_notification_service)


def convert_user_to_schema(user_model) -> UserProfile:
    """Convert user model to schema."""
    return UserProfile(
        id=str(user_model.id),
        email=user_model.email,
        name=user_model.name,
        user_id=user_model.user_id,
        phone=user_model.phone,
        address=user_model.address,
        role=user_model.role,
        remaining_quota=user_model.remaining_quota,
        email_verified=user_model.email_verified,
        created_at=user_model.created_at,
    )


@router.post("/register", response_model=UserProfile, status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> UserProfile:
    """
    Create a customer account.

    The account starts unverified with the full yearly quota; a verification
    link is emailed.
    """
    auth_service = AuthService(db, notifier)

    try:
        user = await auth_service.register(request)
        return convert_user_to_schema(user)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in registration",
            extra={"login": request.user_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> TokenResponse:
    """Exchange email or user id and password for a bearer token."""
    auth_service = AuthService(db, notifier)
    token, user = await auth_service.login(request.identifier, request.password)
    return TokenResponse(
        access_token=token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=convert_user_to_schema(user),
    )


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
    request: TokenRequest,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> MessageResponse:
    await AuthService(db, notifier).verify_email(request.token)
    return MessageResponse(message="Email verified successfully. You can now log in.")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    request: EmailRequest,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> MessageResponse:
    await AuthService(db, notifier).resend_verification(request.email)
    return MessageResponse(message="Verification email sent")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: EmailRequest,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> MessageResponse:
    """Always answers the same way, whether or not the account exists."""
    message = await AuthService(db, notifier).forgot_password(request.email)
    return MessageResponse(message=message)


@router.post("/validate-reset-token", response_model=MessageResponse)
async def validate_reset_token(
    request: TokenRequest,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> MessageResponse:
    await AuthService(db, notifier).validate_reset_token(request.token)
    return MessageResponse(message="Reset token is valid")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest,
    db: AsyncSession = DB_DEPENDENCY,
    notifier: NotificationService = NOTIFIER_DEPENDENCY,
) -> MessageResponse:
    await AuthService(db, notifier).reset_password(request)
    return MessageResponse(message="Password has been reset. You can now log in.")
