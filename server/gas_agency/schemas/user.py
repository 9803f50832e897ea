"""Account, authentication and profile schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import Pagination

PHONE_PATTERN = r"^\+?[0-9]{10,15}$"


class UserRole(str, Enum):
    """User role enumeration."""
    USER = "USER"
    ADMIN = "ADMIN"


class RegisterRequest(BaseModel):
    """Request schema for self-registration."""

    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    user_id: str = Field(
        ..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$", description="Login handle"
    )
    email: EmailStr = Field(..., description="Email address")
    phone: str = Field(..., pattern=PHONE_PATTERN, description="Contact phone number")
    address: str = Field(..., min_length=5, max_length=500, description="Delivery address")
    password: str = Field(..., min_length=8, max_length=128, description="Account password")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(BaseModel):
    """Login with email or user id."""

    identifier: str = Field(..., min_length=1, description="Email address or user id")
    password: str = Field(..., min_length=1, description="Account password")


class EmailRequest(BaseModel):
    """Request carrying only an email address."""

    email: EmailStr = Field(..., description="Email address")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class TokenRequest(BaseModel):
    """Request carrying a verification or reset token."""

    token: str = Field(..., min_length=1, max_length=128, description="Token from the emailed link")


class ResetPasswordRequest(BaseModel):
    """Request schema for completing a password reset."""

    token: str = Field(..., min_length=1, max_length=128, description="Reset token")
    password: str = Field(..., min_length=8, max_length=128, description="New password")


class UserProfile(BaseModel):
    """User response schema."""

    id: str = Field(..., description="Unique user ID")
    email: str = Field(..., description="Email address")
    name: str = Field(..., description="Full name")
    user_id: str = Field(..., description="Login handle")
    phone: Optional[str] = Field(None, description="Phone number")
    address: Optional[str] = Field(None, description="Delivery address")
    role: UserRole = Field(..., description="Account role")
    remaining_quota: int = Field(..., ge=0, description="Cylinders left this year")
    email_verified: bool = Field(..., description="Whether the email address is verified")
    created_at: datetime = Field(..., description="Account creation time (ISO 8601)")

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Access token issued on login."""

    access_token: str = Field(..., description="Bearer token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserProfile


class UpdateProfileRequest(BaseModel):
    """Fields a user may change on their own profile."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    address: Optional[str] = Field(None, min_length=5, max_length=500)


class QuotaResponse(BaseModel):
    """Remaining yearly quota."""

    remaining_quota: int = Field(..., ge=0, description="Cylinders left this year")
    yearly_quota: int = Field(..., ge=0, description="Cylinders allowed per year")
    used: int = Field(..., ge=0, description="Cylinders booked this year")


class AdminCreateUserRequest(BaseModel):
    """Account created by an administrator; the user sets a password from the emailed link."""

    name: str = Field(..., min_length=2, max_length=100)
    user_id: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    address: str = Field(..., min_length=5, max_length=500)
    role: UserRole = UserRole.USER

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class AdminUpdateUserRequest(BaseModel):
    """Fields an administrator may change on any account."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    address: Optional[str] = Field(None, max_length=500)
    role: Optional[UserRole] = None
    remaining_quota: Optional[int] = Field(None, ge=0, le=12)
    # Immutable; present only so attempts to change them can be rejected
    email: Optional[str] = None
    user_id: Optional[str] = None


class UserAction(str, Enum):
    """Account actions an administrator can trigger."""
    RESEND_VERIFICATION = "resend-verification"
    SEND_PASSWORD_RESET = "send-password-reset"


class UserActionRequest(BaseModel):
    action: UserAction = Field(..., description="Action to perform")


class UserList(BaseModel):
    """Paginated users."""

    data: List[UserProfile]
    pagination: Pagination


class UserStats(BaseModel):
    """Account counts for the admin dashboard."""

    total: int
    admins: int
    verified: int
    unverified: int
    with_quota_low: int = Field(..., description="Users with two or fewer cylinders left")
