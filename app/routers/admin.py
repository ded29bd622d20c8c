"""
Back office API endpoints for managing listings.
Every route sits behind the admin gate: anonymous callers get 401 with the
sign-in URL and signed-in non-admins get 403.
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from typing import Optional, Dict, Any
from uuid import UUID

from app.models.user import AuthUser
from app.models.listing import ListingStatus
from app.services.listing import ListingService, resolve_listing_type
from app.schemas.listing import (
    ListingCreate,
    ListingUpdate,
    ListingStatusUpdate,
    ListingResponse,
    ListingListResponse,
    ListingSearchFilters,
    ListingFormData,
    DashboardStats
)
from app.utils.dependencies import get_current_admin_user, get_listing_service
from app.schemas.error import get_crud_error_responses
from app.config import settings


router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(get_current_admin_user)]
)


async def read_form_fields(request: Request) -> Dict[str, Any]:
    """Text fields of a urlencoded or multipart form; file parts are ignored."""
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


@router.get(
    "/stats",
    response_model=DashboardStats,
    status_code=status.HTTP_200_OK,
    summary="Dashboard statistics",
    description="Listing totals by type, featured count and counts per status",
    responses=get_crud_error_responses()
)
async def get_dashboard_stats(
    listing_service: ListingService = Depends(get_listing_service)
) -> DashboardStats:
    return DashboardStats.model_validate(await listing_service.get_dashboard_stats())


@router.get(
    "/listings",
    response_model=ListingListResponse,
    status_code=status.HTTP_200_OK,
    summary="List all listings",
    description="Every listing regardless of status, newest first",
    responses=get_crud_error_responses()
)
async def list_all_listings(
    type: Optional[str] = Query(None, description="car, property or all"),
    listing_status: Optional[ListingStatus] = Query(None, alias="status", description="Filter by status"),
    featured: Optional[bool] = Query(None, description="Filter by featured flag"),
    q: Optional[str] = Query(None, max_length=255, description="Search text"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingListResponse:
    """
    List listings for the back office.

    Args:
        type: Optional type filter
        listing_status: Optional status filter; all statuses when omitted
        featured: Optional featured filter
        q: Optional search text
        page: Page number
        page_size: Listings per page
        listing_service: Listing service instance

    Returns:
        Paginated listings with metadata
    """
    filters = ListingSearchFilters(
        query=q,
        type=resolve_listing_type(type),
        featured=featured,
        status=listing_status,
        page=page,
        page_size=page_size
    )
    listings, total = await listing_service.search_listings(filters, featured_first=False)
    return ListingListResponse.model_validate(
        ListingService.build_page(listings, total, page, page_size)
    )


@router.post(
    "/listings",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create listing",
    description="Create a listing from a JSON body. The caller becomes its owner.",
    responses=get_crud_error_responses()
)
async def create_listing(
    listing_data: ListingCreate,
    current_user: AuthUser = Depends(get_current_admin_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    """
    Create a new listing.

    Args:
        listing_data: Listing creation data
        current_user: Current admin
        listing_service: Listing service instance

    Returns:
        Created listing
    """
    listing = await listing_service.create_listing(listing_data, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.post(
    "/listings/form",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create listing from form",
    description=(
        "Create a listing from admin form fields: type, title, price, location, "
        "whatsapp_number, featured (checkbox), images and features (comma-separated), "
        "description and specifications (JSON object)."
    ),
    responses=get_crud_error_responses()
)
async def create_listing_from_form(
    form: Dict[str, Any] = Depends(read_form_fields),
    current_user: AuthUser = Depends(get_current_admin_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    """
    Create a listing from submitted form fields.

    Raises:
        ValidationError: Missing required fields, an invalid price or malformed specifications
    """
    listing = await listing_service.create_listing_from_form(form, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.get(
    "/listings/{listing_id}",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Get listing",
    description="Listing detail regardless of status",
    responses=get_crud_error_responses()
)
async def get_listing(
    listing_id: UUID,
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.get_listing(str(listing_id), include_hidden=True)
    return ListingResponse.model_validate(listing.to_dict())


@router.get(
    "/listings/{listing_id}/form",
    response_model=ListingFormData,
    status_code=status.HTTP_200_OK,
    summary="Edit form values",
    description="The listing rendered back into form field strings for the edit form",
    responses=get_crud_error_responses()
)
async def get_listing_form(
    listing_id: UUID,
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingFormData:
    return ListingFormData.model_validate(await listing_service.get_listing_form(str(listing_id)))


@router.patch(
    "/listings/{listing_id}",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Update listing",
    description="Partial update from a JSON body; only provided fields change",
    responses=get_crud_error_responses()
)
async def update_listing(
    listing_id: UUID,
    listing_data: ListingUpdate,
    current_user: AuthUser = Depends(get_current_admin_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    """
    Update an existing listing.

    Raises:
        ListingNotFoundError: If the listing does not exist
        ValidationError: If no fields are provided
    """
    listing = await listing_service.update_listing(str(listing_id), listing_data, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.put(
    "/listings/{listing_id}/form",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Update listing from form",
    description="Replace the editable fields with submitted edit form fields",
    responses=get_crud_error_responses()
)
async def update_listing_from_form(
    listing_id: UUID,
    form: Dict[str, Any] = Depends(read_form_fields),
    current_user: AuthUser = Depends(get_current_admin_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.update_listing_from_form(str(listing_id), form, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.patch(
    "/listings/{listing_id}/status",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Change listing status",
    description="Mark a listing active, sold or inactive",
    responses=get_crud_error_responses()
)
async def set_listing_status(
    listing_id: UUID,
    status_data: ListingStatusUpdate,
    current_user: AuthUser = Depends(get_current_admin_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.set_listing_status(str(listing_id), status_data.status, current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.post(
    "/listings/{listing_id}/toggle-featured",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Toggle featured",
    description="Flip whether the listing appears in the featured section",
    responses=get_crud_error_responses()
)
async def toggle_featured(
    listing_id: UUID,
    current_user: AuthUser = Depends(get_current_admin_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    listing = await listing_service.toggle_featured(str(listing_id), current_user)
    return ListingResponse.model_validate(listing.to_dict())


@router.delete(
    "/listings/{listing_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete listing",
    description="Delete a listing permanently",
    responses=get_crud_error_responses()
)
async def delete_listing(
    listing_id: UUID,
    current_user: AuthUser = Depends(get_current_admin_user),
    listing_service: ListingService = Depends(get_listing_service)
) -> Response:
    """
    Delete a listing.

    Raises:
        ListingNotFoundError: If the listing does not exist
    """
    await listing_service.delete_listing(str(listing_id), current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
