"""
Error response schemas for API documentation and consistent error formatting.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(None, description="Field name that caused the error", examples=["email"])
    message: str = Field(..., description="Human-readable error message", examples=["Invalid email format"])
    type: Optional[str] = Field(None, description="Error type identifier", examples=["value_error"])
    input: Optional[Any] = Field(None, description="Input value that caused the error")


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""

    code: str = Field(..., description="Error code identifier", examples=["INVALID_AMOUNT"])
    message: str = Field(..., description="Human-readable error message", examples=["Invalid payment amount"])
    timestamp: str = Field(..., description="Error timestamp in ISO format")
    request_id: Optional[str] = Field(None, description="Unique request identifier for tracking")
    details: Optional[List[ErrorDetail]] = Field(None, description="Field level validation errors")


class APIErrorResponse(BaseModel):
    """Schema for API error response wrapper."""

    error: ErrorResponse


def _example(code: str, message: str) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "timestamp": "2026-01-01T00:00:00Z",
            "request_id": "abc12345",
        }
    }


# status code -> (description, error code, example message)
_ERRORS = {
    400: ("Bad Request", "INVALID_SIGNATURE", "Payment signature verification failed"),
    401: ("Unauthorized", "AUTH_REQUIRED", "Please log in to continue with payment"),
    402: ("Payment Failed", "GATEWAY_FAILURE", "Card declined by bank"),
    403: ("Forbidden", "FORBIDDEN", "Insufficient permissions to create properties"),
    404: ("Not Found", "NOT_FOUND", "Property not found with ID: 42"),
    409: ("Conflict", "CONFLICT", "Payment for order order_NfX2kLq8aZ1b has already failed"),
    422: ("Validation Error", "INVALID_AMOUNT", "Invalid payment amount"),
    500: ("Internal Server Error", "STORE_WRITE_ERROR", "Could not save your payment. Please try again."),
    503: ("Service Unavailable", "GATEWAY_UNAVAILABLE", "Payment gateway not configured. Please contact admin."),
}

COMMON_ERROR_RESPONSES = {
    status_code: {
        "description": description,
        "model": APIErrorResponse,
        "content": {"application/json": {"example": _example(code, message)}},
    }
    for status_code, (description, code, message) in _ERRORS.items()
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """
    Get error response schemas for specific status codes.

    Args:
        status_codes: HTTP status codes to include

    Returns:
        Dictionary of error response schemas
    """
    return {
        code: COMMON_ERROR_RESPONSES[code]
        for code in status_codes
        if code in COMMON_ERROR_RESPONSES
    }


def get_payment_error_responses() -> Dict[int, Dict[str, Any]]:
    """Error responses a payment endpoint can produce."""
    return get_error_responses(400, 401, 402, 404, 409, 422, 500, 503)
