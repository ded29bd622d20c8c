"""
Pydantic schemas for request/response validation.
"""

# Authentication schemas
from .auth import (
    SignInRequest,
    SignUpRequest,
    RefreshTokenRequest,
    CurrentUserResponse,
    SessionResponse,
    SignUpResponse,
    AdminStatusResponse
)

# Listing schemas
from .listing import (
    ListingBase,
    ListingCreate,
    ListingUpdate,
    ListingStatusUpdate,
    ListingResponse,
    ListingListResponse,
    CatalogSectionsResponse,
    ListingSearchFilters,
    SelectOption,
    SearchOptionsResponse,
    ListingFormData,
    DashboardStats
)

# Image schemas
from .image import (
    StoredImage,
    ImageUploadResponse,
    MultipleImageUploadResponse
)

__all__ = [
    # Authentication
    "SignInRequest",
    "SignUpRequest",
    "RefreshTokenRequest",
    "CurrentUserResponse",
    "SessionResponse",
    "SignUpResponse",
    "AdminStatusResponse",

    # Listing
    "ListingBase",
    "ListingCreate",
    "ListingUpdate",
    "ListingStatusUpdate",
    "ListingResponse",
    "ListingListResponse",
    "CatalogSectionsResponse",
    "ListingSearchFilters",
    "SelectOption",
    "SearchOptionsResponse",
    "ListingFormData",
    "DashboardStats",

    # Image
    "StoredImage",
    "ImageUploadResponse",
    "MultipleImageUploadResponse"
]
