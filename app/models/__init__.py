"""
Read models for the Marketplace Storefront API.
Listings and profiles are stored by the managed backend; these classes wrap its rows.
"""

from app.models.listing import Listing, ListingType, ListingStatus
from app.models.user import AuthUser, Profile, UserRole

__all__ = [
    "Listing",
    "ListingType",
    "ListingStatus",
    "AuthUser",
    "Profile",
    "UserRole",
]
