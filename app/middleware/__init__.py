"""
Middleware package for the Marketplace Storefront API.
Provides request validation and request logging.
"""

from .validation import ValidationMiddleware

__all__ = ["ValidationMiddleware"]
