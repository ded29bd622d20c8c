"""
Repository layer over the managed backend's tables.
"""

from .base import BaseRepository
from .listing import ListingRepository, ListingQueryFilters
from .profile import ProfileRepository, coerce_admin_flag

__all__ = [
    "BaseRepository",
    "ListingRepository",
    "ListingQueryFilters",
    "ProfileRepository",
    "coerce_admin_flag",
]
