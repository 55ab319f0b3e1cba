"""
Pydantic schemas for checkout, gateway callbacks and payment history.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional, Union
from datetime import date, datetime
from decimal import Decimal
from buildex.models.payment import PaymentType, PaymentStatus
from buildex.models.rent_subscription import SubscriptionStatus
from buildex.utils.image_list import normalize_images


class CheckoutRequest(BaseModel):
    """Start a purchase or rent checkout."""

    property_id: int = Field(..., examples=[42])
    payment_type: PaymentType = Field(
        ...,
        description="PURCHASE (or BUY) or RENT",
        examples=["PURCHASE"]
    )
    amount: Optional[Union[Decimal, str]] = Field(
        None,
        description="Amount shown to the buyer; must match the listing's price or rent",
        examples=["15000"]
    )


class CheckoutPrefill(BaseModel):
    name: str = ""
    email: str
    contact: str = ""


class CheckoutResponse(BaseModel):
    """Options for the gateway checkout widget."""

    payment_id: int = Field(..., examples=[101])
    key: str = Field(..., description="Gateway public key id")
    amount: int = Field(..., description="Amount in minor units", examples=[1500000])
    currency: str = Field(..., examples=["INR"])
    name: str = Field(..., examples=["BuildEx"])
    description: str = Field(..., examples=["Rent Payment for Sunrise Residency 2BHK"])
    order_id: str = Field(..., examples=["order_NfX2kLq8aZ1b"])
    prefill: CheckoutPrefill
    notes: Dict[str, Any] = Field(default_factory=dict)


class PaymentCompleteRequest(BaseModel):
    """Success callback fields posted back by the checkout widget."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="razorpay_order_id")
    payment_id: str = Field(..., alias="razorpay_payment_id")
    signature: str = Field(..., alias="razorpay_signature")


class PaymentFailureRequest(BaseModel):
    """Failure reported by the checkout widget."""

    order_id: str = Field(..., examples=["order_NfX2kLq8aZ1b"])
    error_description: Optional[str] = Field(None, examples=["Card declined by bank"])


class PaymentAbandonRequest(BaseModel):
    order_id: str


class PaymentResponse(BaseModel):
    """Payment record as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    property_id: int
    builder_id: int
    payment_type: PaymentType
    amount: Decimal
    currency: str
    gateway_order_id: str
    gateway_payment_id: Optional[str] = None
    status: PaymentStatus
    failure_reason: Optional[str] = None
    description: Optional[str] = None
    payment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    property_title: Optional[str] = None
    property_images: List[str] = Field(default_factory=list)

    @field_validator("property_images", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_images(v)

    @classmethod
    def from_payment(cls, payment) -> "PaymentResponse":
        return cls.model_validate(payment.to_dict(include_property=True))


class RentSubscriptionResponse(BaseModel):
    """Rent subscription as returned by the API."""

    id: int
    user_id: int
    property_id: int
    builder_id: int
    monthly_rent: Decimal
    start_date: date
    next_payment_due: date
    last_payment_id: Optional[int] = None
    last_payment_date: Optional[date] = None
    is_active: bool
    status: SubscriptionStatus
    property_title: Optional[str] = None
    property_images: List[str] = Field(default_factory=list)

    @field_validator("property_images", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_images(v)

    @classmethod
    def from_subscription(cls, subscription) -> "RentSubscriptionResponse":
        return cls.model_validate(subscription.to_dict())


class PaymentOutcomeResponse(BaseModel):
    """Result of a completed payment."""

    success: bool = True
    already_processed: bool = False
    payment: PaymentResponse
    subscription: Optional[RentSubscriptionResponse] = None


class ExpirePaymentsResponse(BaseModel):
    expired: int = Field(..., examples=[3])
