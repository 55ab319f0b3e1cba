"""
Rent request repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from buildex.repositories.base import BaseRepository
from buildex.models.enquiry import RequestStatus
from buildex.models.rent_request import RentRequest
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class RentRequestRepository(BaseRepository[RentRequest]):
    """Repository for tenant rent requests."""

    def __init__(self, db: AsyncSession):
        super().__init__(RentRequest, db)

    async def get_pending(self, user_id: int, property_id: int) -> Optional[RentRequest]:
        """
        Get the tenant's undecided request for a property.

        Args:
            user_id: Tenant ID
            property_id: Requested property ID

        Returns:
            Pending request if one exists, None otherwise
        """
        query = select(RentRequest).where(
            and_(
                RentRequest.user_id == user_id,
                RentRequest.property_id == property_id,
                RentRequest.status == RequestStatus.PENDING
            )
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def list_for_user(self, user_id: int, skip: int = 0, limit: int = 100) -> List[RentRequest]:
        """Rent history of a tenant, newest first."""
        return await self.get_multi(skip=skip, limit=limit, filters={"user_id": user_id})

    async def list_for_builder(
        self,
        builder_id: int,
        status: Optional[RequestStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[RentRequest]:
        """Requests for a builder's listings, newest first, optionally by status."""
        return await self.get_multi(
            skip=skip, limit=limit, filters={"builder_id": builder_id, "status": status}
        )
