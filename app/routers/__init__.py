"""
API route handlers for the Marketplace Storefront API.
Provides organized routing for different API endpoints.
"""

from .auth import router as auth_router
from .listings import router as listings_router
from .admin import router as admin_router
from .images import router as images_router

__all__ = ["auth_router", "listings_router", "admin_router", "images_router"]
