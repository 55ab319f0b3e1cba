"""
Service layer for business logic implementation.
Contains services for authentication, listings, payments, OTP registration, enquiries, rent requests and error handling.
"""

from .auth import AuthService
from .property import PropertyService
from .payment import PaymentService, CheckoutSession, PaymentOutcome
from .gateway import RazorpayGateway, GatewayError
from .notification import EmailNotificationDispatcher, NotificationDispatcher, render_template
from .otp import OtpService, MemoryOtpStore, RedisOtpStore
from .enquiry import EnquiryService
from .rent_request import RentRequestService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "PropertyService",
    "PaymentService",
    "CheckoutSession",
    "PaymentOutcome",
    "RazorpayGateway",
    "GatewayError",
    "EmailNotificationDispatcher",
    "NotificationDispatcher",
    "render_template",
    "OtpService",
    "MemoryOtpStore",
    "RedisOtpStore",
    "EnquiryService",
    "RentRequestService",
    "ErrorHandlerService"
]
