"""
Custom exception classes for the BuildEx Marketplace API.
Provides structured error handling with appropriate HTTP status codes.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status
from buildex.utils.result import Err, ErrorKind


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class ValidationError(APIException):
    """Validation error exception."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, str]]] = None,
        error_code: str = "VALIDATION_ERROR"
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )
        self.field_errors = field_errors or []


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class UnauthorizedError(APIException):
    """Authentication required exception."""

    def __init__(self, detail: str = "Authentication required", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    """Access forbidden exception."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class ConflictError(APIException):
    """Resource conflict exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT"
        )


class BadRequestError(APIException):
    """Bad request exception."""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )


class InternalServerError(APIException):
    """Internal server error exception."""

    def __init__(self, detail: str = "Internal server error", error_code: str = "INTERNAL_SERVER_ERROR"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code=error_code
        )


class ServiceUnavailableError(APIException):
    """Service unavailable exception."""

    def __init__(self, detail: str = "Service temporarily unavailable", error_code: str = "SERVICE_UNAVAILABLE"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code
        )


# Authentication specific exceptions
class InvalidCredentialsError(UnauthorizedError):
    """Invalid login credentials exception."""

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(detail)


class TokenExpiredError(UnauthorizedError):
    """JWT token expired exception."""

    def __init__(self, detail: str = "Token has expired"):
        super().__init__(detail)


class InvalidTokenError(UnauthorizedError):
    """Invalid JWT token exception."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail)


class InactiveUserError(ForbiddenError):
    """Inactive user account exception."""

    def __init__(self, detail: str = "User account is inactive"):
        super().__init__(detail)


class InsufficientPermissionsError(ForbiddenError):
    """Insufficient permissions exception."""

    def __init__(self, action: str):
        super().__init__(f"Insufficient permissions to {action}")


# Payment specific exceptions
class AuthRequiredError(UnauthorizedError):
    """Checkout attempted without a session."""

    def __init__(self, detail: str = "Please log in to continue with payment"):
        super().__init__(detail, error_code="AUTH_REQUIRED")


class InvalidAmountError(ValidationError):
    """Payment amount did not resolve to a positive number."""

    def __init__(self, detail: str = "Invalid payment amount"):
        super().__init__(detail, error_code="INVALID_AMOUNT")


class GatewayUnavailableError(ServiceUnavailableError):
    """Payment gateway is not configured."""

    def __init__(self, detail: str = "Payment gateway not configured. Please contact admin."):
        super().__init__(detail, error_code="GATEWAY_UNAVAILABLE")


class GatewayFailureError(APIException):
    """Payment declined or errored at the gateway."""

    def __init__(self, detail: str = "Payment failed"):
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=detail,
            error_code="GATEWAY_FAILURE"
        )


class InvalidSignatureError(BadRequestError):
    """Gateway callback signature did not verify."""

    def __init__(self, detail: str = "Payment signature verification failed"):
        super().__init__(detail, error_code="INVALID_SIGNATURE")


class StoreWriteError(InternalServerError):
    """Persistence failure surfaced as a generic message."""

    def __init__(self, detail: str = "Could not save your request. Please try again."):
        super().__init__(detail, error_code="STORE_WRITE_ERROR")


def exception_from_error(error: Err) -> APIException:
    """
    Translate a service Err into the matching API exception.

    Args:
        error: Failed service result

    Returns:
        APIException ready to be raised from a route handler
    """
    kind = error.kind
    message = error.message

    if kind == ErrorKind.VALIDATION:
        return ValidationError(message)
    if kind == ErrorKind.AUTH_REQUIRED:
        return AuthRequiredError(message)
    if kind == ErrorKind.INVALID_AMOUNT:
        return InvalidAmountError(message)
    if kind == ErrorKind.GATEWAY_UNAVAILABLE:
        return GatewayUnavailableError(message)
    if kind == ErrorKind.GATEWAY_FAILURE:
        return GatewayFailureError(message)
    if kind == ErrorKind.INVALID_SIGNATURE:
        return InvalidSignatureError(message)
    if kind == ErrorKind.NOT_FOUND:
        exc = NotFoundError("Resource")
        exc.detail = message
        return exc
    if kind == ErrorKind.CONFLICT:
        return ConflictError(message)
    if kind == ErrorKind.NOTIFICATION_FAILED:
        return ServiceUnavailableError(message, error_code="NOTIFICATION_FAILED")
    return StoreWriteError(message)
