"""
Enquiry repository for the builder inbox and a user's sent enquiries.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from buildex.repositories.base import BaseRepository
from buildex.models.enquiry import Enquiry
from typing import List
import logging

logger = logging.getLogger(__name__)


class EnquiryRepository(BaseRepository[Enquiry]):

    def __init__(self, db: AsyncSession):
        super().__init__(Enquiry, db)

    async def list_for_user(self, user_id: int, skip: int = 0, limit: int = 100) -> List[Enquiry]:
        """Enquiries sent by a user, newest first."""
        return await self.get_multi(skip=skip, limit=limit, filters={"user_id": user_id})

    async def list_for_builder(self, builder_id: int, skip: int = 0, limit: int = 100) -> List[Enquiry]:
        """Enquiries about a builder's listings, newest first."""
        return await self.get_multi(skip=skip, limit=limit, filters={"builder_id": builder_id})
