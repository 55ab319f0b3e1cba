"""
Property listing API endpoints for creation, lookup and filtered browsing.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
import math

from buildex.models.user import User
from buildex.models.property import PropertyPurpose, AvailabilityStatus, ListingStatus, Property
from buildex.services.property import PropertyService
from buildex.schemas.property import (
    PropertyCreate,
    PropertyResponse,
    PropertyListResponse
)
from buildex.utils.dependencies import (
    get_current_builder_user,
    get_property_service
)
from buildex.schemas.error import get_error_responses


router = APIRouter(prefix="/properties", tags=["Properties"])


def _page(properties: List[Property], total: int, page: int, page_size: int) -> PropertyListResponse:
    total_pages = math.ceil(total / page_size) if total > 0 else 1
    return PropertyListResponse(
        properties=[PropertyResponse.model_validate(prop) for prop in properties],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1
    )


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new property",
    description="Create a new property listing. Requires builder or admin role.",
    responses=get_error_responses(401, 403, 422)
)
async def create_property(
    property_data: PropertyCreate,
    current_user: User = Depends(get_current_builder_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Create a new property listing.

    Raises:
        InsufficientPermissionsError: If user is not a builder or admin
        ValidationError: If the listing has no amount for its purpose
    """
    property_obj = await property_service.create_property(property_data, current_user)
    return PropertyResponse.model_validate(property_obj)


@router.get(
    "",
    response_model=PropertyListResponse,
    status_code=status.HTTP_200_OK,
    summary="List properties with filtering",
    description="Get paginated list of properties, newest first"
)
async def list_properties(
    property_type: Optional[str] = Query(None, description="Apartment, Villa, ... (case-insensitive)"),
    purpose: Optional[PropertyPurpose] = Query(None, description="Buy or Rent"),
    city: Optional[str] = Query(None, description="City (partial match)"),
    locality: Optional[str] = Query(None, description="Locality (partial match)"),
    availability_status: Optional[AvailabilityStatus] = Query(None, description="AVAILABLE, SOLD, RENTED or BOOKED"),
    listing_status: Optional[ListingStatus] = Query(None, alias="status", description="Moderation status"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of properties per page"),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    properties, total = await property_service.search_properties(
        property_type=property_type,
        purpose=purpose,
        city=city,
        locality=locality,
        availability_status=availability_status,
        status=listing_status,
        page=page,
        page_size=page_size
    )
    return _page(properties, total, page, page_size)


@router.get(
    "/mine",
    response_model=PropertyListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my properties",
    description="Listings owned by the current builder",
    responses=get_error_responses(401, 403)
)
async def list_my_properties(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_builder_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    properties, total = await property_service.get_builder_properties(
        current_user.id, page=page, page_size=page_size
    )
    return _page(properties, total, page, page_size)


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Get property details",
    responses=get_error_responses(404)
)
async def get_property(
    property_id: int = Path(..., ge=1, description="Property ID"),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Get a single property.

    Raises:
        NotFoundError: If property doesn't exist
    """
    property_obj = await property_service.get_property(property_id)
    return PropertyResponse.model_validate(property_obj)
