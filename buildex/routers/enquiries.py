"""
Enquiry endpoints: visitors and users message a listing's builder, who approves or rejects.
"""

from fastapi import APIRouter, Depends, status, Path
from typing import List, Optional

from buildex.models.user import User
from buildex.services.enquiry import EnquiryService
from buildex.schemas.enquiry import EnquiryCreate, EnquiryResponse, RequestDecision
from buildex.schemas.error import get_error_responses
from buildex.utils.dependencies import (
    get_enquiry_service,
    get_optional_current_user,
    get_current_active_user,
    get_current_builder_user
)


router = APIRouter(prefix="/enquiries", tags=["Enquiries"])


@router.post(
    "",
    response_model=EnquiryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send an enquiry",
    description="Buy, rent or site-visit enquiry. Login is optional; visitors give a name and email.",
    responses=get_error_responses(404, 422)
)
async def create_enquiry(
    enquiry_data: EnquiryCreate,
    current_user: Optional[User] = Depends(get_optional_current_user),
    enquiry_service: EnquiryService = Depends(get_enquiry_service)
) -> EnquiryResponse:
    enquiry = await enquiry_service.create_enquiry(enquiry_data, current_user)
    return EnquiryResponse.from_enquiry(enquiry)


@router.get(
    "/me",
    response_model=List[EnquiryResponse],
    status_code=status.HTTP_200_OK,
    summary="My enquiries",
    responses=get_error_responses(401, 403)
)
async def my_enquiries(
    current_user: User = Depends(get_current_active_user),
    enquiry_service: EnquiryService = Depends(get_enquiry_service)
) -> List[EnquiryResponse]:
    enquiries = await enquiry_service.list_user_enquiries(current_user.id)
    return [EnquiryResponse.from_enquiry(enquiry) for enquiry in enquiries]


@router.get(
    "/received",
    response_model=List[EnquiryResponse],
    status_code=status.HTTP_200_OK,
    summary="Enquiries received",
    description="Enquiries about the current builder's listings, newest first",
    responses=get_error_responses(401, 403)
)
async def received_enquiries(
    current_user: User = Depends(get_current_builder_user),
    enquiry_service: EnquiryService = Depends(get_enquiry_service)
) -> List[EnquiryResponse]:
    enquiries = await enquiry_service.list_builder_enquiries(current_user.id)
    return [EnquiryResponse.from_enquiry(enquiry) for enquiry in enquiries]


@router.patch(
    "/{enquiry_id}/status",
    response_model=EnquiryResponse,
    status_code=status.HTTP_200_OK,
    summary="Approve or reject an enquiry",
    responses=get_error_responses(401, 403, 404, 422)
)
async def decide_enquiry(
    decision: RequestDecision,
    enquiry_id: int = Path(..., description="Enquiry ID"),
    current_user: User = Depends(get_current_builder_user),
    enquiry_service: EnquiryService = Depends(get_enquiry_service)
) -> EnquiryResponse:
    """
    Record the builder's decision.

    Raises:
        ForbiddenError: If the enquiry is about another builder's listing
    """
    enquiry = await enquiry_service.decide(enquiry_id, decision.status, current_user)
    return EnquiryResponse.from_enquiry(enquiry)
