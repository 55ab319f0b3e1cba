"""
Pydantic schemas for enquiries and rent requests.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import date, datetime
from buildex.models.enquiry import EnquiryType, RequestStatus


class EnquiryCreate(BaseModel):
    """
    Enquiry about a listing. Contact fields default to the logged-in
    user's profile and are required for anonymous visitors.
    """

    property_id: int = Field(..., examples=[42])
    full_name: Optional[str] = Field(None, max_length=100, examples=["Asha Rao"])
    email: Optional[EmailStr] = Field(None, examples=["asha@example.com"])
    phone: Optional[str] = Field(None, max_length=20, examples=["9876543210"])
    message: Optional[str] = Field(None, max_length=2000, examples=["Is the price negotiable?"])
    enquiry_type: EnquiryType = Field(EnquiryType.BUY, examples=["buy"])
    visit_date: Optional[date] = Field(None, description="Preferred date for a site visit")

    @field_validator("full_name", "phone", "message")
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None


class EnquiryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: int
    user_id: Optional[int] = None
    builder_id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    message: Optional[str] = None
    enquiry_type: EnquiryType
    status: RequestStatus
    created_at: Optional[datetime] = None
    property_title: Optional[str] = None

    @classmethod
    def from_enquiry(cls, enquiry) -> "EnquiryResponse":
        return cls.model_validate(enquiry.to_dict())


class RequestDecision(BaseModel):
    """Builder decision on an enquiry."""

    status: RequestStatus = Field(..., examples=["approved"])

    @field_validator("status")
    @classmethod
    def must_be_decision(cls, v):
        if v == RequestStatus.PENDING:
            raise ValueError("Status must be approved or rejected")
        return v


class RentRequestCreate(BaseModel):
    """Request to rent a listing."""

    property_id: int = Field(..., examples=[11])
    move_in_date: date = Field(..., examples=["2024-02-01"])
    message: Optional[str] = Field(None, max_length=2000, examples=["Family of three, no pets"])
    phone: Optional[str] = Field(None, max_length=20, description="Contact number if not on the profile")


class RentRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: int
    user_id: int
    builder_id: int
    move_in_date: date
    message: Optional[str] = None
    status: RequestStatus
    created_at: Optional[datetime] = None
    property_title: Optional[str] = None
    tenant_name: Optional[str] = None

    @classmethod
    def from_rent_request(cls, rent_request) -> "RentRequestResponse":
        return cls.model_validate(rent_request.to_dict())
