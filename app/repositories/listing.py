"""
Listing repository for the catalog and the back office.
Translates search filters into backend table queries.
"""

from supabase import AsyncClient
from app.repositories.base import BaseRepository
from app.models.listing import Listing, ListingType, ListingStatus
from app.config import settings
from typing import Optional, List, Dict, Any, Tuple
from decimal import Decimal
import re
import logging

logger = logging.getLogger(__name__)

# Characters with meaning inside a PostgREST or=(...) filter or an ilike pattern
_FILTER_SYNTAX = re.compile(r'[,()\\*%_"]')


class ListingQueryFilters:
    """Data class for listing query filters."""

    def __init__(
        self,
        type: Optional[ListingType] = None,
        location: Optional[str] = None,
        search_text: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        featured: Optional[bool] = None,
        status: Optional[ListingStatus] = ListingStatus.ACTIVE
    ):
        self.type = type
        self.location = location
        self.search_text = search_text
        self.min_price = min_price
        self.max_price = max_price
        self.featured = featured
        # None means every status
        self.status = status


def _pattern(value: str) -> str:
    """Substring pattern for ilike with filter syntax characters removed."""
    cleaned = _FILTER_SYNTAX.sub(" ", value).strip()
    return f"%{cleaned}%"


class ListingRepository(BaseRepository):
    """
    Repository for listings with catalog search and back office operations.
    Returns Listing read models; rows that fail to parse are skipped and logged.
    """

    def __init__(self, client: AsyncClient):
        super().__init__(client, settings.listings_table)

    @staticmethod
    def _to_listings(rows: List[Dict[str, Any]]) -> List[Listing]:
        listings = []
        for row in rows:
            try:
                listings.append(Listing.from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed listing row {row.get('id')}: {e}")
        return listings

    def _apply_filters(self, query, filters: ListingQueryFilters):
        """
        Apply search filters to a table query.

        Args:
            query: Backend select query
            filters: ListingQueryFilters instance

        Returns:
            The filtered query
        """
        if filters.status is not None:
            query = query.eq("status", filters.status.value)

        if filters.type is not None:
            query = query.eq("type", filters.type.value)

        # Location filter (case-insensitive partial match)
        if filters.location:
            query = query.ilike("location", _pattern(filters.location))

        # Text search in title or description
        if filters.search_text:
            term = _pattern(filters.search_text)
            if term != "%%":
                query = query.or_(f"title.ilike.{term},description.ilike.{term}")

        if filters.min_price is not None:
            query = query.gte("price", str(filters.min_price))
        if filters.max_price is not None:
            query = query.lte("price", str(filters.max_price))

        if filters.featured is not None:
            query = query.eq("featured", filters.featured)

        return query

    async def search_listings(
        self,
        filters: ListingQueryFilters,
        skip: int = 0,
        limit: int = 20,
        featured_first: bool = True
    ) -> Tuple[List[Listing], int]:
        """
        Search listings with filtering and pagination.

        Args:
            filters: ListingQueryFilters instance with search criteria
            skip: Number of rows to skip for pagination
            limit: Maximum number of rows to return
            featured_first: Order featured listings ahead of the rest

        Returns:
            Tuple of (listings, total count)
        """
        try:
            query = self.table().select("*", count="exact")
            query = self._apply_filters(query, filters)

            if featured_first:
                query = query.order("featured", desc=True)
            query = query.order("created_at", desc=True)
            query = query.range(skip, skip + limit - 1)

            response = await query.execute()
            rows = response.data or []
            total_count = response.count if response.count is not None else len(rows)

            logger.debug(f"Listing search returned {len(rows)} of {total_count} total results")
            return self._to_listings(rows), total_count
        except Exception as e:
            logger.error(f"Failed to search listings: {e}")
            raise

    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        """Get a listing by ID regardless of status."""
        row = await self.get_by_id(listing_id)
        return Listing.from_row(row) if row else None

    async def create_listing(self, listing_data: Dict[str, Any]) -> Listing:
        """
        Insert a listing row.

        Args:
            listing_data: Column values, already validated

        Returns:
            Created listing
        """
        row = await self.create(listing_data)
        listing = Listing.from_row(row)
        logger.info(f"Created listing: {listing.title} (ID: {listing.id})")
        return listing

    async def update_listing(self, listing_id: str, update_data: Dict[str, Any]) -> Optional[Listing]:
        """Update a listing. Returns None when the listing does not exist."""
        row = await self.update(listing_id, update_data)
        return Listing.from_row(row) if row else None

    async def set_images(self, listing_id: str, images: List[str]) -> Optional[Listing]:
        """Replace the image URL list of a listing."""
        return await self.update_listing(listing_id, {"images": images})

    async def get_listing_statistics(self) -> Dict[str, Any]:
        """
        Get listing statistics for the admin dashboard.

        Every figure is an exact server-side count, so totals are not bounded
        by the backend's maximum page size.

        Returns:
            Dictionary with totals per type, featured count and counts per status
        """
        try:
            statistics = {
                "total_listings": await self.count(),
                "cars": await self.count({"type": ListingType.CAR.value}),
                "properties": await self.count({"type": ListingType.PROPERTY.value}),
                "featured": await self.count({"featured": True}),
                "by_status": {
                    status.value: await self.count({"status": status.value})
                    for status in ListingStatus
                },
            }

            logger.debug("Generated listing statistics")
            return statistics
        except Exception as e:
            logger.error(f"Failed to get listing statistics: {e}")
            raise
