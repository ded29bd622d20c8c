"""
Public catalog API endpoints: listing search, catalog sections and listing detail.
Anonymous callers only ever see active listings.
"""

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
from decimal import Decimal
from uuid import UUID

from app.services.listing import ListingService, resolve_listing_type
from app.schemas.listing import (
    ListingResponse,
    ListingListResponse,
    CatalogSectionsResponse,
    ListingSearchFilters,
    SearchOptionsResponse
)
from app.utils.dependencies import get_listing_service, get_optional_admin_flag
from app.utils.exceptions import ValidationError
from app.schemas.error import get_public_error_responses
from app.config import settings


router = APIRouter(prefix="/listings", tags=["Catalog"])


def catalog_filters(
    q: Optional[str] = Query(None, max_length=255, description="Search text matched against title and description"),
    type: Optional[str] = Query(None, description="car, property or all"),
    location: Optional[str] = Query(None, max_length=255, description="Location substring, case-insensitive"),
    min_price: Optional[Decimal] = Query(None, ge=0, description="Minimum price"),
    max_price: Optional[Decimal] = Query(None, ge=0, description="Maximum price"),
    featured: Optional[bool] = Query(None, description="Only featured (true) or only regular (false) listings"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Listings per page")
) -> ListingSearchFilters:
    """Build validated catalog filters from query parameters."""
    try:
        return ListingSearchFilters(
            query=q,
            type=resolve_listing_type(type),
            location=location,
            min_price=min_price,
            max_price=max_price,
            featured=featured,
            page=page,
            page_size=page_size
        )
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid search filters",
            field_errors=[
                {"field": ".".join(str(loc) for loc in err["loc"]) or "filters", "message": err["msg"]}
                for err in e.errors()
            ]
        )


@router.get(
    "",
    response_model=ListingListResponse,
    status_code=status.HTTP_200_OK,
    summary="Search the catalog",
    description="Paginated active listings, featured first, then newest first",
    responses=get_public_error_responses()
)
async def list_listings(
    filters: ListingSearchFilters = Depends(catalog_filters),
    price_range: Optional[str] = Query(None, description="Preset such as 0-500000 or 5000000+"),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingListResponse:
    """
    Search the public catalog.

    Args:
        filters: Search filters and pagination
        price_range: Optional price preset; explicit min/max prices win
        listing_service: Listing service instance

    Returns:
        Paginated listings with metadata
    """
    listings, total = await listing_service.list_catalog(filters, price_range=price_range)
    return ListingListResponse.model_validate(
        ListingService.build_page(listings, total, filters.page, filters.page_size)
    )


@router.get(
    "/sections",
    response_model=CatalogSectionsResponse,
    status_code=status.HTTP_200_OK,
    summary="Catalog grid sections",
    description="Filtered catalog split into featured and regular listings. Each section is queried over the whole filtered catalog and paginated on its own.",
    responses=get_public_error_responses()
)
async def get_catalog_sections(
    filters: ListingSearchFilters = Depends(catalog_filters),
    price_range: Optional[str] = Query(None, description="Preset such as 0-500000 or 5000000+"),
    listing_service: ListingService = Depends(get_listing_service)
) -> CatalogSectionsResponse:
    """Featured and regular listings for the catalog page."""
    sections = await listing_service.get_catalog_sections(filters, price_range=price_range)
    return CatalogSectionsResponse(
        featured=[ListingResponse.model_validate(listing.to_dict()) for listing in sections["featured"]],
        regular=[ListingResponse.model_validate(listing.to_dict()) for listing in sections["regular"]],
        featured_total=sections["featured_total"],
        regular_total=sections["regular_total"],
        total=sections["total"]
    )


@router.get(
    "/search-options",
    response_model=SearchOptionsResponse,
    status_code=status.HTTP_200_OK,
    summary="Search form presets",
    description="Location and price range presets offered by the search form"
)
async def get_search_options() -> SearchOptionsResponse:
    return SearchOptionsResponse.model_validate(ListingService.get_search_options())


@router.get(
    "/{listing_id}",
    response_model=ListingResponse,
    status_code=status.HTTP_200_OK,
    summary="Get listing",
    description="Listing detail with contact link. Sold and inactive listings are only visible to admins.",
    responses=get_public_error_responses()
)
async def get_listing(
    listing_id: UUID,
    is_admin: bool = Depends(get_optional_admin_flag),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    """
    Get a listing by ID.

    Raises:
        ListingNotFoundError: If the listing does not exist or is hidden from the caller
    """
    listing = await listing_service.get_listing(str(listing_id), include_hidden=is_admin)
    return ListingResponse.model_validate(listing.to_dict())
