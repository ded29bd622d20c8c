"""
Sample catalog data used to seed a fresh backend.
"""

from .sample_listings import SAMPLE_LISTINGS

__all__ = ["SAMPLE_LISTINGS"]
