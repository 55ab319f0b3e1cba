"""
Database models for the BuildEx Marketplace API.
Includes User, Property, Payment, RentSubscription, Enquiry and RentRequest models.
"""

from buildex.models.user import User, UserRole
from buildex.models.property import Property, PropertyPurpose, AvailabilityStatus, ListingStatus
from buildex.models.payment import Payment, PaymentType, PaymentStatus
from buildex.models.rent_subscription import RentSubscription, SubscriptionStatus
from buildex.models.enquiry import Enquiry, EnquiryType, RequestStatus
from buildex.models.rent_request import RentRequest

__all__ = [
    "User",
    "UserRole",
    "Property",
    "PropertyPurpose",
    "AvailabilityStatus",
    "ListingStatus",
    "Payment",
    "PaymentType",
    "PaymentStatus",
    "RentSubscription",
    "SubscriptionStatus",
    "Enquiry",
    "EnquiryType",
    "RequestStatus",
    "RentRequest",
]
