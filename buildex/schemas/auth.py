"""
Pydantic schemas for authentication requests and responses.
Handles login, token refresh and OTP-verified registration.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional
from buildex.models.user import UserRole
from buildex.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["asha@example.com"]
    )
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="User's password (minimum 8 characters)",
        examples=["securepassword123"]
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str = Field(
        ...,
        description="Valid refresh token",
        examples=["eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."]
    )


class AccessTokenResponse(BaseModel):
    """Access token response schema."""

    access_token: str = Field(..., description="New JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(
        ...,
        description="Access token expiration time in seconds",
        examples=[1800]
    )


class CurrentUserResponse(UserResponse):
    """Current user response with role permissions."""

    permissions: List[str] = Field(
        default_factory=list,
        description="User's permissions based on role",
        examples=[["pay_for_property", "view_own_payments"]]
    )

    @classmethod
    def from_user(cls, user) -> "CurrentUserResponse":
        response = cls.model_validate(user)
        response.permissions = permissions_for(user.role)
        return response


def permissions_for(role: UserRole) -> List[str]:
    """Permissions granted to a role."""
    base = ["pay_for_property", "view_own_payments", "view_own_subscriptions"]
    if role == UserRole.ADMIN:
        return base + [
            "create_property",
            "view_all_payments",
            "expire_pending_payments",
        ]
    if role == UserRole.BUILDER:
        return base + ["create_property", "view_received_payments"]
    return base


class LoginResponse(BaseModel):
    """Complete login response schema."""

    user: CurrentUserResponse = Field(..., description="Authenticated user information")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(
        ...,
        description="Access token expiration time in seconds",
        examples=[1800]
    )


class RegisterRequest(BaseModel):
    """Registration request; the account is created once the emailed OTP is verified."""

    email: str = Field(
        ...,
        description="Email address the OTP is sent to",
        examples=["asha@example.com"]
    )
    password: str = Field(
        ...,
        description="Password (minimum 8 characters)",
        examples=["securepassword123"]
    )
    username: Optional[str] = Field(None, max_length=50, examples=["asha"])
    full_name: Optional[str] = Field(None, max_length=100, examples=["Asha Rao"])
    phone: Optional[str] = Field(None, max_length=15, examples=["9876543210"])
    role: UserRole = Field(
        default=UserRole.USER,
        description="user or builder",
        examples=["user"]
    )


class RegisterResponse(BaseModel):
    """OTP issued for a pending registration."""

    success: bool = True
    message: str = Field(default="OTP sent successfully")
    email: str
    expires_in_seconds: int = Field(..., examples=[600])


class VerifyOtpRequest(BaseModel):
    """OTP verification request."""

    email: str = Field(..., examples=["asha@example.com"])
    otp: str = Field(..., description="6-digit code from the email", examples=["482913"])


class VerifyOtpResponse(BaseModel):
    """Account created after a successful OTP check."""

    success: bool = True
    message: str = Field(default="OTP verified successfully")
    user: UserResponse
