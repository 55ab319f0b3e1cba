"""
Rent request service.

A tenant asks to rent an available rental listing from a move-in date. The
request is stored with a companion "rent" enquiry carrying the tenant's
message, and the builder is emailed. The builder then approves or rejects
it once.
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from buildex.models.enquiry import EnquiryType, RequestStatus
from buildex.models.property import PropertyPurpose, AvailabilityStatus
from buildex.models.rent_request import RentRequest
from buildex.models.user import User, UserRole
from buildex.repositories.enquiry import EnquiryRepository
from buildex.repositories.property import PropertyRepository
from buildex.repositories.rent_request import RentRequestRepository
from buildex.schemas.enquiry import RentRequestCreate
from buildex.services.enquiry import EnquiryService
from buildex.services.notification import NotificationDispatcher
from buildex.utils.clock import Clock, utc_now
from buildex.utils.exceptions import NotFoundError, ForbiddenError, ValidationError, ConflictError
import logging

logger = logging.getLogger(__name__)


class RentRequestService:

    def __init__(self, db_session: AsyncSession, dispatcher: NotificationDispatcher, clock: Clock = utc_now):
        self.db = db_session
        self.clock = clock
        self.rent_request_repo = RentRequestRepository(db_session)
        self.enquiry_repo = EnquiryRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.enquiries = EnquiryService(db_session, dispatcher)

    async def create_rent_request(self, request_data: RentRequestCreate, current_user: User) -> RentRequest:
        """
        Ask to rent a property.

        Args:
            request_data: Property and move-in date
            current_user: Tenant making the request

        Returns:
            Created rent request (status pending)

        Raises:
            NotFoundError: If the property doesn't exist
            ValidationError: If the listing is not for rent or the date is in the past
            ConflictError: If the property is taken or a request is already pending
        """
        property_obj = await self.property_repo.get_by_id(request_data.property_id)
        if not property_obj:
            raise NotFoundError("Property", str(request_data.property_id))

        if property_obj.purpose != PropertyPurpose.RENT:
            raise ValidationError("This property is not listed for rent")

        if property_obj.availability_status != AvailabilityStatus.AVAILABLE:
            raise ConflictError("Property is not available for rent")

        if request_data.move_in_date < self.clock().date():
            raise ValidationError("Move-in date cannot be in the past")

        if await self.rent_request_repo.get_pending(current_user.id, property_obj.id):
            raise ConflictError("You already have a pending rent request for this property")

        phone = request_data.phone or current_user.phone
        try:
            rent_request = await self.rent_request_repo.create({
                "property_id": property_obj.id,
                "user_id": current_user.id,
                "builder_id": property_obj.builder_id,
                "move_in_date": request_data.move_in_date,
                "message": request_data.message,
                "status": RequestStatus.PENDING,
            }, commit=False)
            await self.enquiry_repo.create({
                "property_id": property_obj.id,
                "user_id": current_user.id,
                "builder_id": property_obj.builder_id,
                "full_name": current_user.display_name,
                "email": current_user.email,
                "phone": phone,
                "message": request_data.message,
                "enquiry_type": EnquiryType.RENT,
                "status": RequestStatus.PENDING,
            }, commit=False)
            await self.db.commit()
            await self.db.refresh(rent_request)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create rent request for property {property_obj.id}: {e}")
            raise

        logger.info(
            f"Rent request {rent_request.id} by user {current_user.id} for property {property_obj.id} "
            f"from {request_data.move_in_date}"
        )
        message = f"[Rent Request from {request_data.move_in_date.isoformat()}] {request_data.message or ''}"
        await self.enquiries.notify_builder(property_obj, {
            "user_name": current_user.display_name,
            "user_email": current_user.email,
            "user_phone": phone,
            "message": message.strip(),
        })
        return rent_request

    async def list_user_requests(self, user_id: int) -> List[RentRequest]:
        return await self.rent_request_repo.list_for_user(user_id)

    async def list_builder_requests(
        self, builder_id: int, status: Optional[RequestStatus] = None
    ) -> List[RentRequest]:
        return await self.rent_request_repo.list_for_builder(builder_id, status=status)

    async def decide(self, request_id: int, status: RequestStatus, current_user: User) -> RentRequest:
        """
        Approve or reject a pending rent request.

        Raises:
            NotFoundError: If the request doesn't exist
            ForbiddenError: If the request is for another builder's listing
            ConflictError: If the request was already decided
        """
        rent_request = await self.rent_request_repo.get_by_id(request_id)
        if not rent_request:
            raise NotFoundError("Rent request", str(request_id))

        if current_user.role != UserRole.ADMIN and rent_request.builder_id != current_user.id:
            raise ForbiddenError("You can only manage rent requests for your own listings")

        if rent_request.status != RequestStatus.PENDING:
            raise ConflictError(f"Rent request has already been {rent_request.status.value}")

        rent_request = await self.rent_request_repo.update(rent_request.id, {"status": status})
        logger.info(f"Rent request {rent_request.id} {status.value} by user {current_user.id}")
        return rent_request
