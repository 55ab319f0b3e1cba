"""
Discriminated result type returned by the payment and OTP services.
Services return Ok or Err instead of raising across their boundary.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, TypeVar, Union
import enum

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure categories surfaced by service operations."""
    VALIDATION = "VALIDATION_ERROR"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    GATEWAY_UNAVAILABLE = "GATEWAY_UNAVAILABLE"
    GATEWAY_FAILURE = "GATEWAY_FAILURE"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"
    STORE_WRITE = "STORE_WRITE_ERROR"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""
    value: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying an error kind and a user-facing message."""
    kind: ErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return False


Result = Union[Ok[T], Err]
