"""
Repository layer for data access operations.
"""

from buildex.repositories.base import BaseRepository
from buildex.repositories.property import PropertyRepository, PropertySearchFilters
from buildex.repositories.user import UserRepository
from buildex.repositories.payment import PaymentRepository
from buildex.repositories.rent_subscription import RentSubscriptionRepository
from buildex.repositories.enquiry import EnquiryRepository
from buildex.repositories.rent_request import RentRequestRepository

__all__ = [
    "BaseRepository",
    "PropertyRepository",
    "PropertySearchFilters",
    "UserRepository",
    "PaymentRepository",
    "RentSubscriptionRepository",
    "EnquiryRepository",
    "RentRequestRepository",
]
