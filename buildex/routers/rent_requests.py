"""
Rent request endpoints for tenants and the builders who decide on them.
"""

from fastapi import APIRouter, Depends, status, Path, Query
from typing import List, Optional

from buildex.models.enquiry import RequestStatus
from buildex.models.user import User
from buildex.services.rent_request import RentRequestService
from buildex.schemas.enquiry import RentRequestCreate, RentRequestResponse
from buildex.schemas.error import get_error_responses
from buildex.utils.dependencies import (
    get_rent_request_service,
    get_current_active_user,
    get_current_builder_user
)


router = APIRouter(prefix="/rent-requests", tags=["Rent Requests"])


@router.post(
    "",
    response_model=RentRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request to rent a property",
    description="Creates a pending rent request and notifies the builder",
    responses=get_error_responses(401, 403, 404, 409, 422)
)
async def create_rent_request(
    request_data: RentRequestCreate,
    current_user: User = Depends(get_current_active_user),
    rent_request_service: RentRequestService = Depends(get_rent_request_service)
) -> RentRequestResponse:
    """
    Ask the builder to rent a listing.

    Raises:
        NotFoundError: If the property doesn't exist
        ValidationError: If the property is not for rent or the move-in date has passed
        ConflictError: If the property is taken or a request is already pending
    """
    rent_request = await rent_request_service.create_rent_request(request_data, current_user)
    return RentRequestResponse.from_rent_request(rent_request)


@router.get(
    "/me",
    response_model=List[RentRequestResponse],
    status_code=status.HTTP_200_OK,
    summary="My rent requests",
    responses=get_error_responses(401, 403)
)
async def my_rent_requests(
    current_user: User = Depends(get_current_active_user),
    rent_request_service: RentRequestService = Depends(get_rent_request_service)
) -> List[RentRequestResponse]:
    requests = await rent_request_service.list_user_requests(current_user.id)
    return [RentRequestResponse.from_rent_request(r) for r in requests]


@router.get(
    "/received",
    response_model=List[RentRequestResponse],
    status_code=status.HTTP_200_OK,
    summary="Rent requests received",
    description="Requests for the current builder's listings, optionally by status",
    responses=get_error_responses(401, 403)
)
async def received_rent_requests(
    request_status: Optional[RequestStatus] = Query(None, alias="status", description="pending, approved or rejected"),
    current_user: User = Depends(get_current_builder_user),
    rent_request_service: RentRequestService = Depends(get_rent_request_service)
) -> List[RentRequestResponse]:
    requests = await rent_request_service.list_builder_requests(current_user.id, status=request_status)
    return [RentRequestResponse.from_rent_request(r) for r in requests]


@router.patch(
    "/{request_id}/approve",
    response_model=RentRequestResponse,
    status_code=status.HTTP_200_OK,
    summary="Approve a rent request",
    responses=get_error_responses(401, 403, 404, 409)
)
async def approve_rent_request(
    request_id: int = Path(..., description="Rent request ID"),
    current_user: User = Depends(get_current_builder_user),
    rent_request_service: RentRequestService = Depends(get_rent_request_service)
) -> RentRequestResponse:
    rent_request = await rent_request_service.decide(request_id, RequestStatus.APPROVED, current_user)
    return RentRequestResponse.from_rent_request(rent_request)


@router.patch(
    "/{request_id}/reject",
    response_model=RentRequestResponse,
    status_code=status.HTTP_200_OK,
    summary="Reject a rent request",
    responses=get_error_responses(401, 403, 404, 409)
)
async def reject_rent_request(
    request_id: int = Path(..., description="Rent request ID"),
    current_user: User = Depends(get_current_builder_user),
    rent_request_service: RentRequestService = Depends(get_rent_request_service)
) -> RentRequestResponse:
    rent_request = await rent_request_service.decide(request_id, RequestStatus.REJECTED, current_user)
    return RentRequestResponse.from_rent_request(rent_request)
