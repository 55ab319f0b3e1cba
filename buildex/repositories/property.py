"""
Property repository for managing listings with filtering and availability updates.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, desc, update
from buildex.repositories.base import BaseRepository
from buildex.models.property import Property, PropertyPurpose, AvailabilityStatus, ListingStatus
from typing import Optional, List, Tuple
import logging

logger = logging.getLogger(__name__)


class PropertySearchFilters:
    """Data class for property search filters."""

    def __init__(
        self,
        property_type: Optional[str] = None,
        purpose: Optional[PropertyPurpose] = None,
        city: Optional[str] = None,
        locality: Optional[str] = None,
        availability_status: Optional[AvailabilityStatus] = None,
        status: Optional[ListingStatus] = None,
        builder_id: Optional[int] = None
    ):
        self.property_type = property_type
        self.purpose = purpose
        self.city = city
        self.locality = locality
        self.availability_status = availability_status
        self.status = status
        self.builder_id = builder_id


class PropertyRepository(BaseRepository[Property]):
    """
    Repository for listings: creation, filtered search and availability changes.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    async def search_properties(
        self,
        filters: PropertySearchFilters,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Property], int]:
        """
        Search properties with filtering and pagination.

        Args:
            filters: PropertySearchFilters instance with search criteria
            skip: Number of records to skip for pagination
            limit: Maximum number of records to return

        Returns:
            Tuple of (properties list, total count)
        """
        try:
            query = select(Property)
            count_query = select(func.count(Property.id))

            conditions = self._build_filter_conditions(filters)
            if conditions:
                query = query.where(and_(*conditions))
                count_query = count_query.where(and_(*conditions))

            count_result = await self.db.execute(count_query)
            total_count = count_result.scalar() or 0

            query = query.order_by(desc(Property.created_at), desc(Property.id)).offset(skip).limit(limit)
            result = await self.db.execute(query)
            properties = result.scalars().all()

            logger.debug(f"Property search returned {len(properties)} of {total_count} total results")
            return list(properties), total_count
        except Exception as e:
            logger.error(f"Failed to search properties: {e}")
            raise

    def _build_filter_conditions(self, filters: PropertySearchFilters) -> List:
        conditions = []

        if filters.property_type:
            conditions.append(func.lower(Property.property_type) == filters.property_type.lower())

        if filters.purpose:
            conditions.append(Property.purpose == filters.purpose)

        # City and locality are case-insensitive partial matches
        if filters.city:
            conditions.append(Property.city.ilike(f"%{filters.city}%"))

        if filters.locality:
            conditions.append(Property.locality.ilike(f"%{filters.locality}%"))

        if filters.availability_status:
            conditions.append(Property.availability_status == filters.availability_status)

        if filters.status:
            conditions.append(Property.status == filters.status)

        if filters.builder_id is not None:
            conditions.append(Property.builder_id == filters.builder_id)

        return conditions

    async def get_properties_by_builder(
        self,
        builder_id: int,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Property], int]:
        """
        Get properties owned by a specific builder.

        Args:
            builder_id: ID of the builder
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (properties list, total count)
        """
        return await self.search_properties(
            PropertySearchFilters(builder_id=builder_id), skip=skip, limit=limit
        )

    async def set_availability(self, property_id: int, availability: AvailabilityStatus) -> bool:
        """
        Set a property's availability status.

        Only flushes; the caller owns the transaction.

        Args:
            property_id: ID of the property
            availability: New availability status

        Returns:
            True if a row was updated
        """
        stmt = (
            update(Property)
            .where(Property.id == property_id)
            .values(availability_status=availability)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        await self.db.flush()

        updated = result.rowcount > 0
        if updated:
            logger.info(f"Property {property_id} marked {availability.value}")
        return updated
