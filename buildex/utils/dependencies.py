"""
FastAPI dependency injection utilities for authentication, services and collaborators.
Provides reusable dependencies for route protection and user extraction.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from buildex.config import settings
from buildex.database import get_db
from buildex.models.user import User, UserRole
from buildex.services.auth import AuthService
from buildex.services.property import PropertyService
from buildex.services.payment import PaymentService
from buildex.services.otp import OtpService, OtpStore
from buildex.services.enquiry import EnquiryService
from buildex.services.rent_request import RentRequestService
from buildex.services.gateway import RazorpayGateway
from buildex.services.notification import EmailNotificationDispatcher, NotificationDispatcher
from buildex.utils.clock import Clock, utc_now
from buildex.utils.exceptions import (
    UnauthorizedError,
    InactiveUserError,
    InsufficientPermissionsError,
    APIException
)
import logging

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """
    Get authentication service instance.

    Args:
        db: Database session

    Returns:
        AuthService instance
    """
    return AuthService(db)


async def get_property_service(db: AsyncSession = Depends(get_db)) -> PropertyService:
    """Get property service instance."""
    return PropertyService(db)


def get_payment_gateway() -> RazorpayGateway:
    """Gateway client built from the current settings."""
    return RazorpayGateway.from_settings(settings)


def get_notification_dispatcher() -> NotificationDispatcher:
    return EmailNotificationDispatcher.from_settings(settings)


def get_clock() -> Clock:
    return utc_now


def get_otp_store(request: Request) -> OtpStore:
    """OTP store created at startup and shared across requests."""
    return request.app.state.otp_store


async def get_payment_service(
    db: AsyncSession = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    clock: Clock = Depends(get_clock)
) -> PaymentService:
    """
    Get payment service instance wired with its collaborators.

    Returns:
        PaymentService instance
    """
    return PaymentService(
        db,
        gateway=gateway,
        dispatcher=dispatcher,
        clock=clock,
        currency=settings.payment_currency,
        company_name=settings.company_name,
        pending_ttl_minutes=settings.pending_payment_ttl_minutes,
    )


async def get_otp_service(
    db: AsyncSession = Depends(get_db),
    store: OtpStore = Depends(get_otp_store),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
) -> OtpService:
    return OtpService(db, store=store, dispatcher=dispatcher, ttl_seconds=settings.otp_ttl_seconds)


async def get_enquiry_service(
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
) -> EnquiryService:
    return EnquiryService(db, dispatcher)


async def get_rent_request_service(
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    clock: Clock = Depends(get_clock)
) -> RentRequestService:
    return RentRequestService(db, dispatcher, clock=clock)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer credentials
        auth_service: Authentication service

    Returns:
        Current User object

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        TokenExpiredError: If token is expired
        InactiveUserError: If user account is inactive
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    return await auth_service.get_current_user(credentials.credentials)


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current active user (additional check for user status).

    Raises:
        InactiveUserError: If user account is inactive
    """
    if not current_user.is_active:
        raise InactiveUserError()

    return current_user


async def get_current_builder_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current user with builder role (or admin).

    Raises:
        InsufficientPermissionsError: If user is neither a builder nor an admin
    """
    if current_user.role not in (UserRole.BUILDER, UserRole.ADMIN):
        raise InsufficientPermissionsError("access builder resources")

    return current_user


async def get_current_admin_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current user with admin role.

    Raises:
        InsufficientPermissionsError: If user is not an admin
    """
    if current_user.role != UserRole.ADMIN:
        raise InsufficientPermissionsError("access admin resources")

    return current_user


# Optional authentication dependency (for endpoints that decide themselves what a missing user means)
async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    """
    Get current user if token is provided and valid, otherwise return None.

    Args:
        credentials: HTTP Bearer credentials (optional)
        auth_service: Authentication service

    Returns:
        User object if authenticated, None otherwise
    """
    if not credentials:
        return None

    try:
        return await auth_service.get_current_user(credentials.credentials)
    except APIException as e:
        logger.info(f"Ignoring unusable bearer token: {e.detail}")
        return None
