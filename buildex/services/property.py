"""
Property service for managing listings with business logic validation.
Handles creation, retrieval and filtered search of properties.
"""

from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from buildex.repositories.property import PropertyRepository, PropertySearchFilters
from buildex.models.property import Property, PropertyPurpose, AvailabilityStatus, ListingStatus
from buildex.models.user import User, UserRole
from buildex.schemas.property import PropertyCreate
from buildex.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    InsufficientPermissionsError
)
from buildex.utils.image_list import encode_images
import logging

logger = logging.getLogger(__name__)


class PropertyService:
    """
    Property service for listing management.
    Builders and admins create listings; anyone can browse them.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)

    async def create_property(self, property_data: PropertyCreate, current_user: User) -> Property:
        """
        Create a new listing owned by the current user.

        Args:
            property_data: Property creation data
            current_user: Builder or admin creating the listing

        Returns:
            Created property instance

        Raises:
            InsufficientPermissionsError: If the user is not a builder or admin
            ForbiddenError: If the user is inactive
            ValidationError: If the listing has no amount for its purpose
        """
        if current_user.role not in (UserRole.BUILDER, UserRole.ADMIN):
            raise InsufficientPermissionsError("create properties")

        if not current_user.is_active:
            raise ForbiddenError("Inactive users cannot create properties")

        if property_data.purpose == PropertyPurpose.BUY and not property_data.price:
            raise ValidationError("A price is required for sale listings")
        if property_data.purpose == PropertyPurpose.RENT and not property_data.rent_amount:
            raise ValidationError("A rent amount is required for rental listings")

        create_data = property_data.model_dump(exclude={"images"})
        create_data["images"] = encode_images(property_data.images)
        create_data["builder_id"] = current_user.id
        create_data["availability_status"] = AvailabilityStatus.AVAILABLE
        # Admin listings skip moderation
        create_data["status"] = (
            ListingStatus.APPROVED if current_user.role == UserRole.ADMIN else ListingStatus.PENDING
        )

        property_obj = await self.property_repo.create(create_data)
        logger.info(
            f"Property created by user {current_user.email}: {property_obj.title} (ID: {property_obj.id})"
        )
        return property_obj

    async def get_property(self, property_id: int) -> Property:
        """
        Get property by ID.

        Raises:
            NotFoundError: If property doesn't exist
        """
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        return property_obj

    async def search_properties(
        self,
        property_type: Optional[str] = None,
        purpose: Optional[PropertyPurpose] = None,
        city: Optional[str] = None,
        locality: Optional[str] = None,
        availability_status: Optional[AvailabilityStatus] = None,
        status: Optional[ListingStatus] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Property], int]:
        """
        Search listings with filters and pagination.

        Returns:
            Tuple of (properties list, total count)
        """
        filters = PropertySearchFilters(
            property_type=property_type,
            purpose=purpose,
            city=city,
            locality=locality,
            availability_status=availability_status,
            status=status,
        )
        skip = (page - 1) * page_size
        return await self.property_repo.search_properties(filters, skip=skip, limit=page_size)

    async def get_builder_properties(
        self,
        builder_id: int,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Property], int]:
        """Listings owned by one builder, newest first."""
        skip = (page - 1) * page_size
        return await self.property_repo.get_properties_by_builder(builder_id, skip=skip, limit=page_size)
