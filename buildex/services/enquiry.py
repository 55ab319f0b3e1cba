"""
Enquiry service: messages from buyers, tenants and site visitors to a
listing's builder, and the builder's approve or reject decision.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from buildex.models.enquiry import Enquiry, EnquiryType, RequestStatus
from buildex.models.property import Property
from buildex.models.user import User, UserRole
from buildex.repositories.enquiry import EnquiryRepository
from buildex.repositories.property import PropertyRepository
from buildex.repositories.user import UserRepository
from buildex.schemas.enquiry import EnquiryCreate
from buildex.services.notification import NotificationDispatcher
from buildex.utils.exceptions import NotFoundError, ForbiddenError, ValidationError
import logging

logger = logging.getLogger(__name__)


class EnquiryService:
    """
    Service for listing enquiries.
    Anyone may enquire; only the listing's builder (or an admin) decides.
    """

    def __init__(self, db_session: AsyncSession, dispatcher: NotificationDispatcher):
        self.db = db_session
        self.dispatcher = dispatcher
        self.enquiry_repo = EnquiryRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.user_repo = UserRepository(db_session)

    async def create_enquiry(self, enquiry_data: EnquiryCreate, current_user: Optional[User] = None) -> Enquiry:
        """
        Record an enquiry and email the listing's builder.

        Args:
            enquiry_data: Enquiry details
            current_user: Logged-in user, or None for a visitor

        Returns:
            Created enquiry

        Raises:
            NotFoundError: If the property doesn't exist
            ValidationError: If contact details or the visit date are missing
        """
        property_obj = await self.property_repo.get_by_id(enquiry_data.property_id)
        if not property_obj:
            raise NotFoundError("Property", str(enquiry_data.property_id))

        full_name = enquiry_data.full_name or (current_user.display_name if current_user else None)
        email = enquiry_data.email or (current_user.email if current_user else None)
        if not full_name or not email:
            raise ValidationError("Name and email are required")

        message = enquiry_data.message
        if enquiry_data.enquiry_type == EnquiryType.VISIT:
            if enquiry_data.visit_date is None:
                raise ValidationError("A visit date is required for site visits")
            message = f"[Visit Request for {enquiry_data.visit_date.isoformat()}] {message or ''}".strip()

        enquiry = await self.enquiry_repo.create({
            "property_id": property_obj.id,
            "user_id": current_user.id if current_user else None,
            "builder_id": property_obj.builder_id,
            "full_name": full_name,
            "email": email,
            "phone": enquiry_data.phone or (current_user.phone if current_user else None),
            "message": message,
            "enquiry_type": enquiry_data.enquiry_type,
            "status": RequestStatus.PENDING,
        })
        logger.info(
            f"Enquiry {enquiry.id} ({enquiry.enquiry_type.value}) for property {property_obj.id} from {email}"
        )

        await self.notify_builder(property_obj, {
            "user_name": full_name,
            "user_email": email,
            "user_phone": enquiry.phone,
            "message": message,
        })
        return enquiry

    async def notify_builder(self, property_obj: Property, data: Dict[str, Any]) -> None:
        """Send enquiry_notification to the listing's builder. Failures are only logged."""
        try:
            builder = await self.user_repo.get_by_id(property_obj.builder_id)
            if builder is None:
                logger.error(f"Builder {property_obj.builder_id} of property {property_obj.id} not found")
                return
            sent = await self.dispatcher.send(
                builder.email, "enquiry_notification", {"property_name": property_obj.title, **data}
            )
            if not sent:
                logger.warning(f"Enquiry notification for property {property_obj.id} was not delivered")
        except Exception as e:
            logger.error(f"Error sending enquiry notification for property {property_obj.id}: {e}")

    async def list_user_enquiries(self, user_id: int) -> List[Enquiry]:
        return await self.enquiry_repo.list_for_user(user_id)

    async def list_builder_enquiries(self, builder_id: int) -> List[Enquiry]:
        return await self.enquiry_repo.list_for_builder(builder_id)

    async def decide(self, enquiry_id: int, status: RequestStatus, current_user: User) -> Enquiry:
        """
        Approve or reject an enquiry.

        Raises:
            NotFoundError: If the enquiry doesn't exist
            ForbiddenError: If the enquiry is about another builder's listing
            ValidationError: If status is not a decision
        """
        if status == RequestStatus.PENDING:
            raise ValidationError("Status must be approved or rejected")

        enquiry = await self.enquiry_repo.get_by_id(enquiry_id)
        if not enquiry:
            raise NotFoundError("Enquiry", str(enquiry_id))

        if current_user.role != UserRole.ADMIN and enquiry.builder_id != current_user.id:
            raise ForbiddenError("You can only manage enquiries for your own listings")

        enquiry = await self.enquiry_repo.update(enquiry.id, {"status": status})
        logger.info(f"Enquiry {enquiry.id} {status.value} by user {current_user.id}")
        return enquiry
