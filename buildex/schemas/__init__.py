"""
Pydantic schemas for request/response validation.
"""

# Authentication schemas
from .auth import (
    LoginRequest,
    RefreshTokenRequest,
    AccessTokenResponse,
    CurrentUserResponse,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
)

# User schemas
from .user import UserResponse

# Property schemas
from .property import (
    PropertyBase,
    PropertyCreate,
    PropertyResponse,
    PropertyListResponse,
)

# Payment schemas
from .payment import (
    CheckoutRequest,
    CheckoutResponse,
    PaymentCompleteRequest,
    PaymentFailureRequest,
    PaymentAbandonRequest,
    PaymentResponse,
    PaymentOutcomeResponse,
    RentSubscriptionResponse,
    ExpirePaymentsResponse,
)

# Enquiry and rent request schemas
from .enquiry import (
    EnquiryCreate,
    EnquiryResponse,
    RequestDecision,
    RentRequestCreate,
    RentRequestResponse,
)

__all__ = [
    # Authentication
    "LoginRequest",
    "RefreshTokenRequest",
    "AccessTokenResponse",
    "CurrentUserResponse",
    "LoginResponse",
    "RegisterRequest",
    "RegisterResponse",
    "VerifyOtpRequest",
    "VerifyOtpResponse",

    # User
    "UserResponse",

    # Property
    "PropertyBase",
    "PropertyCreate",
    "PropertyResponse",
    "PropertyListResponse",

    # Payment
    "CheckoutRequest",
    "CheckoutResponse",
    "PaymentCompleteRequest",
    "PaymentFailureRequest",
    "PaymentAbandonRequest",
    "PaymentResponse",
    "PaymentOutcomeResponse",
    "RentSubscriptionResponse",
    "ExpirePaymentsResponse",

    # Enquiries and rent requests
    "EnquiryCreate",
    "EnquiryResponse",
    "RequestDecision",
    "RentRequestCreate",
    "RentRequestResponse",
]
