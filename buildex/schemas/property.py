"""
Pydantic schemas for property requests and responses.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional
from datetime import datetime
from buildex.models.property import PropertyPurpose, AvailabilityStatus, ListingStatus
from buildex.utils.image_list import normalize_images
from buildex.utils.money import resolve_amount


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    title: str = Field(
        ...,
        min_length=3,
        max_length=200,
        description="Property listing title",
        examples=["Sunrise Residency 2BHK"]
    )

    property_type: str = Field(
        ...,
        min_length=2,
        max_length=50,
        description="Apartment, Villa, Plot, ...",
        examples=["Apartment"]
    )

    purpose: PropertyPurpose = Field(
        ...,
        description="Buy or Rent",
        examples=["Buy"]
    )

    price: Optional[str] = Field(
        None,
        max_length=50,
        description="Sale price as displayed",
        examples=["45,00,000"]
    )

    rent_amount: Optional[str] = Field(
        None,
        max_length=50,
        description="Monthly rent as displayed",
        examples=["15000"]
    )

    area_sqft: Optional[str] = Field(None, max_length=50, examples=["1150"])
    city: Optional[str] = Field(None, max_length=100, examples=["Pune"])
    locality: Optional[str] = Field(None, max_length=100, examples=["Baner"])
    description: Optional[str] = Field(None, max_length=5000)
    bedrooms: Optional[int] = Field(None, ge=0, le=50, examples=[2])
    bathrooms: Optional[int] = Field(None, ge=0, le=50, examples=[2])

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        """Validate and clean title."""
        if not v or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()


class PropertyCreate(PropertyBase):
    """Schema for creating a listing."""

    images: List[str] = Field(
        default_factory=list,
        description="Image URLs or data URIs",
        examples=[["https://cdn.example.com/a.jpg"]]
    )

    @field_validator("images", mode="before")
    @classmethod
    def normalize(cls, v):
        """Accept any stored or submitted image shape."""
        return normalize_images(v)

    @field_validator("price", "rent_amount")
    @classmethod
    def validate_amounts(cls, v):
        """Amounts must resolve to a positive number when given."""
        if v is not None and resolve_amount(v) is None:
            raise ValueError("Amount must be a positive number")
        return v


class PropertyResponse(PropertyBase):
    """Schema for property responses; images are always a list."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., examples=[42])
    builder_id: int = Field(..., examples=[3])
    images: List[str] = Field(default_factory=list)
    availability_status: AvailabilityStatus = Field(..., examples=["AVAILABLE"])
    status: ListingStatus = Field(..., examples=["approved"])
    created_at: Optional[datetime] = None

    @field_validator("images", mode="before")
    @classmethod
    def normalize(cls, v: Any):
        return normalize_images(v)


class PropertyListResponse(BaseModel):
    """Schema for paginated property list response."""

    properties: List[PropertyResponse] = Field(..., description="List of properties")
    total: int = Field(..., examples=[150])
    page: int = Field(..., examples=[1])
    page_size: int = Field(..., examples=[20])
    total_pages: int = Field(..., examples=[8])
    has_next: bool
    has_previous: bool
