"""
Pydantic schemas for user responses.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime
from buildex.models.user import UserRole


class UserResponse(BaseModel):
    """User response schema (excluding sensitive data)."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(
        ...,
        description="User's unique identifier",
        examples=[7]
    )

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["asha@example.com"]
    )

    username: Optional[str] = Field(
        None,
        description="Display handle",
        examples=["asha"]
    )

    full_name: Optional[str] = Field(
        None,
        description="User's full name",
        examples=["Asha Rao"]
    )

    phone: Optional[str] = Field(
        None,
        description="Contact number",
        examples=["9876543210"]
    )

    role: UserRole = Field(
        ...,
        description="User's role",
        examples=["user"]
    )

    is_active: bool = Field(
        ...,
        description="Whether the user account is active",
        examples=[True]
    )

    created_at: Optional[datetime] = Field(
        None,
        description="Account creation timestamp"
    )
