"""
Listing service for the public catalog and the admin back office.
Handles catalog search, admin CRUD, form parsing and business rules.
"""

from typing import Optional, List, Dict, Any, Tuple
from supabase import AsyncClient
from postgrest.exceptions import APIError
from app.repositories.listing import ListingRepository, ListingQueryFilters
from app.models.listing import Listing, ListingType, ListingStatus
from app.models.user import AuthUser
from app.schemas.listing import (
    ListingCreate,
    ListingUpdate,
    ListingSearchFilters
)
from app.utils.validators import ValidationUtils, BusinessRuleValidator
from app.utils.exceptions import (
    APIException,
    ListingNotFoundError,
    ValidationError,
    BackendError
)
from app.config import settings
import math
import logging

logger = logging.getLogger(__name__)


# Search form presets
LOCATION_OPTIONS = ["Nairobi", "Mombasa", "Kisumu", "Nakuru", "Eldoret"]

PRICE_RANGE_OPTIONS = {
    ListingType.CAR.value: [
        ("0-500000", "Under KSH 500K"),
        ("500000-1000000", "KSH 500K - 1M"),
        ("1000000-2000000", "KSH 1M - 2M"),
        ("2000000-5000000", "KSH 2M - 5M"),
        ("5000000+", "Above KSH 5M"),
    ],
    ListingType.PROPERTY.value: [
        ("0-1000000", "Under KSH 1M"),
        ("1000000-5000000", "KSH 1M - 5M"),
        ("5000000-10000000", "KSH 5M - 10M"),
        ("10000000-20000000", "KSH 10M - 20M"),
        ("20000000+", "Above KSH 20M"),
    ],
}

TYPE_OPTIONS = [(ListingType.CAR.value, "Cars"), (ListingType.PROPERTY.value, "Properties")]

FORM_REQUIRED_FIELDS = ["type", "title", "price", "location"]


def resolve_listing_type(value: Optional[str]) -> Optional[ListingType]:
    """Map a type query value to ListingType; blank or "all" means no filter."""
    if value is None or not value.strip() or value.strip().lower() == "all":
        return None
    try:
        return ListingType(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid listing type: {value}",
            field_errors=[{"field": "type", "message": "Type must be car, property or all"}]
        )


class ListingService:
    """
    Listing service for the catalog and the back office.
    Permission gating happens in the router dependencies; this layer applies
    the visibility rules and business rules.
    """

    def __init__(self, client: AsyncClient):
        self.client = client
        self.listing_repo = ListingRepository(client)

    # Catalog

    async def search_listings(
        self,
        filters: ListingSearchFilters,
        price_range: Optional[str] = None,
        featured_first: bool = True
    ) -> Tuple[List[Listing], int]:
        """
        Search listings.

        Args:
            filters: Validated search filters
            price_range: Optional preset such as "0-500000" or "5000000+";
                explicit min/max prices take precedence
            featured_first: Order featured listings ahead of the rest

        Returns:
            Tuple of (listings, total count)
        """
        try:
            min_price, max_price = filters.min_price, filters.max_price
            if price_range:
                preset_min, preset_max = ValidationUtils.parse_price_range(price_range)
                if min_price is None:
                    min_price = preset_min
                if max_price is None:
                    max_price = preset_max
            BusinessRuleValidator.validate_price_range(min_price, max_price)

            query_filters = ListingQueryFilters(
                type=filters.type,
                location=filters.location,
                search_text=filters.query,
                min_price=min_price,
                max_price=max_price,
                featured=filters.featured,
                status=filters.status
            )

            skip = (filters.page - 1) * filters.page_size
            listings, total = await self.listing_repo.search_listings(
                query_filters,
                skip=skip,
                limit=filters.page_size,
                featured_first=featured_first
            )

            logger.debug(f"Listing search returned {len(listings)} of {total} listings")
            return listings, total

        except (APIException, APIError):
            raise
        except Exception as e:
            logger.error(f"Failed to search listings: {e}")
            raise BackendError(f"Failed to search listings: {str(e)}")

    async def list_catalog(
        self,
        filters: ListingSearchFilters,
        price_range: Optional[str] = None
    ) -> Tuple[List[Listing], int]:
        """Public catalog: active listings only, featured first."""
        public_filters = filters.model_copy(update={"status": ListingStatus.ACTIVE})
        return await self.search_listings(public_filters, price_range=price_range)

    async def get_catalog_sections(
        self,
        filters: ListingSearchFilters,
        price_range: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Split the filtered catalog into featured and regular listings.

        Each section is its own query over the whole filtered catalog;
        page and page_size apply to each section separately.

        Returns:
            Dictionary with ``featured``, ``regular``, their totals and ``total``
        """
        sections: Dict[str, Any] = {}
        for name, featured in (("featured", True), ("regular", False)):
            if filters.featured is not None and filters.featured is not featured:
                sections[name], sections[f"{name}_total"] = [], 0
                continue
            section_filters = filters.model_copy(update={"featured": featured})
            sections[name], sections[f"{name}_total"] = await self.list_catalog(
                section_filters, price_range=price_range
            )

        sections["total"] = sections["featured_total"] + sections["regular_total"]
        return sections

    async def get_listing(self, listing_id: str, include_hidden: bool = False) -> Listing:
        """
        Get a listing by ID.

        Args:
            listing_id: ID of the listing
            include_hidden: Whether sold and inactive listings are visible

        Raises:
            ListingNotFoundError: If the listing does not exist or is hidden
        """
        try:
            listing = await self.listing_repo.get_listing(listing_id)

            if not listing:
                raise ListingNotFoundError(listing_id)

            # Hidden listings look missing to the public
            if not include_hidden and not listing.is_active:
                raise ListingNotFoundError(listing_id)

            return listing

        except (APIException, APIError):
            raise
        except Exception as e:
            logger.error(f"Failed to get listing {listing_id}: {e}")
            raise BackendError(f"Failed to retrieve listing: {str(e)}")

    @staticmethod
    def get_search_options() -> Dict[str, Any]:
        """Preset locations, price ranges and types offered by the search form."""
        return {
            "locations": [{"value": name.lower(), "label": name} for name in LOCATION_OPTIONS],
            "price_ranges": {
                listing_type: [{"value": value, "label": label} for value, label in presets]
                for listing_type, presets in PRICE_RANGE_OPTIONS.items()
            },
            "types": [{"value": value, "label": label} for value, label in TYPE_OPTIONS],
        }

    # Back office

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        """Counts for the admin dashboard."""
        return await self.listing_repo.get_listing_statistics()

    async def create_listing(self, listing_data: ListingCreate, current_user: AuthUser) -> Listing:
        """
        Create a listing owned by the current admin.

        Raises:
            ValidationError: If business rules are violated
        """
        try:
            BusinessRuleValidator.validate_image_upload_limits(
                0, len(listing_data.images), settings.max_images_per_listing
            )

            create_data = listing_data.model_dump(mode="json")
            create_data["price"] = float(listing_data.price)
            create_data["user_id"] = current_user.id

            listing = await self.listing_repo.create_listing(create_data)
            logger.info(f"Listing created by {current_user.email}: {listing.title} (ID: {listing.id})")
            return listing

        except (APIException, APIError):
            raise
        except Exception as e:
            logger.error(f"Failed to create listing for user {current_user.id}: {e}")
            raise BackendError(f"Failed to create listing: {str(e)}")

    async def update_listing(
        self,
        listing_id: str,
        listing_data: ListingUpdate,
        current_user: AuthUser
    ) -> Listing:
        """
        Apply a partial update to a listing.

        Raises:
            ValidationError: If no fields are provided or rules are violated
            ListingNotFoundError: If the listing does not exist
        """
        try:
            update_data = listing_data.model_dump(mode="json", exclude_unset=True)
            # Explicit nulls only make sense for the description
            update_data = {
                k: v for k, v in update_data.items()
                if v is not None or k == "description"
            }

            if not update_data:
                raise ValidationError("No valid fields provided for update")

            if listing_data.price is not None:
                update_data["price"] = float(listing_data.price)

            if "images" in update_data:
                BusinessRuleValidator.validate_image_upload_limits(
                    0, len(update_data["images"]), settings.max_images_per_listing
                )

            listing = await self.listing_repo.update_listing(listing_id, update_data)
            if not listing:
                raise ListingNotFoundError(listing_id)

            logger.info(f"Listing updated by {current_user.email}: {listing_id}")
            return listing

        except (APIException, APIError):
            raise
        except Exception as e:
            logger.error(f"Failed to update listing {listing_id}: {e}")
            raise BackendError(f"Failed to update listing: {str(e)}")

    async def set_listing_status(self, listing_id: str, status: ListingStatus, current_user: AuthUser) -> Listing:
        """Change the status of a listing."""
        listing = await self.listing_repo.update_listing(listing_id, {"status": status.value})
        if not listing:
            raise ListingNotFoundError(listing_id)
        logger.info(f"Listing {listing_id} marked {status.value} by {current_user.email}")
        return listing

    async def toggle_featured(self, listing_id: str, current_user: AuthUser) -> Listing:
        """Flip the featured flag of a listing."""
        listing = await self.get_listing(listing_id, include_hidden=True)
        updated = await self.listing_repo.update_listing(listing_id, {"featured": not listing.featured})
        if not updated:
            raise ListingNotFoundError(listing_id)
        logger.info(f"Listing {listing_id} featured={updated.featured} by {current_user.email}")
        return updated

    async def delete_listing(self, listing_id: str, current_user: AuthUser) -> None:
        """
        Delete a listing.

        Raises:
            ListingNotFoundError: If the listing does not exist
        """
        deleted = await self.listing_repo.delete(listing_id)
        if not deleted:
            raise ListingNotFoundError(listing_id)
        logger.info(f"Listing deleted by {current_user.email}: {listing_id}")

    # Admin form handling

    @staticmethod
    def parse_listing_form(form: Dict[str, Any]) -> Dict[str, Any]:
        """
        Turn submitted admin form fields into listing column values.

        The form posts every value as text: comma-separated images and
        features, a JSON object for specifications and "on" for the
        featured checkbox.

        Args:
            form: Raw form fields

        Returns:
            Column values ready for insert or update

        Raises:
            ValidationError: With a user-facing message for the first problem found
        """
        ValidationUtils.validate_required_fields(form, FORM_REQUIRED_FIELDS)

        listing_type = resolve_listing_type(str(form["type"]))
        if listing_type is None:
            raise ValidationError("Type must be car or property")

        price = ValidationUtils.validate_price(form["price"])

        images = ValidationUtils.parse_comma_list(form.get("images"))
        BusinessRuleValidator.validate_image_upload_limits(0, len(images), settings.max_images_per_listing)

        whatsapp_number = (form.get("whatsapp_number") or "").strip()
        if whatsapp_number:
            whatsapp_number = ValidationUtils.validate_phone_number(whatsapp_number)
        else:
            whatsapp_number = settings.default_whatsapp_number

        description = (form.get("description") or "").strip() or None

        values = {
            "type": listing_type.value,
            "title": str(form["title"]).strip(),
            "price": float(price),
            "location": str(form["location"]).strip(),
            "description": description,
            "images": images,
            "features": ValidationUtils.parse_comma_list(form.get("features")),
            "specifications": ValidationUtils.parse_specifications(form.get("specifications")),
            "whatsapp_number": whatsapp_number,
            "featured": ValidationUtils.parse_checkbox(form.get("featured")),
        }

        status_value = (form.get("status") or "").strip()
        if status_value:
            try:
                values["status"] = ListingStatus(status_value.lower()).value
            except ValueError:
                raise ValidationError(f"Invalid status: {status_value}")

        return values

    async def create_listing_from_form(self, form: Dict[str, Any], current_user: AuthUser) -> Listing:
        """Create a listing from submitted admin form fields."""
        values = self.parse_listing_form(form)
        values.setdefault("status", ListingStatus.ACTIVE.value)
        values["currency"] = settings.default_currency
        values["user_id"] = current_user.id

        listing = await self.listing_repo.create_listing(values)
        logger.info(f"Listing created from form by {current_user.email}: {listing.title} (ID: {listing.id})")
        return listing

    async def update_listing_from_form(
        self,
        listing_id: str,
        form: Dict[str, Any],
        current_user: AuthUser
    ) -> Listing:
        """Replace a listing's editable fields with submitted admin form fields."""
        values = self.parse_listing_form(form)

        listing = await self.listing_repo.update_listing(listing_id, values)
        if not listing:
            raise ListingNotFoundError(listing_id)

        logger.info(f"Listing updated from form by {current_user.email}: {listing_id}")
        return listing

    async def get_listing_form(self, listing_id: str) -> Dict[str, Any]:
        """
        Render a listing back into admin form field strings.
        Parsing the result with parse_listing_form yields the same values.
        """
        listing = await self.get_listing(listing_id, include_hidden=True)
        return {
            "type": listing.type.value,
            "title": listing.title,
            "price": format(listing.price.normalize(), "f"),
            "location": listing.location,
            "images": ValidationUtils.join_comma_list(listing.images),
            "description": listing.description or "",
            "features": ValidationUtils.join_comma_list(listing.features),
            "specifications": ValidationUtils.dump_specifications(listing.specifications),
            "whatsapp_number": listing.whatsapp_number,
            "featured": listing.featured,
            "status": listing.status.value,
        }

    # Images

    async def add_images(self, listing_id: str, urls: List[str]) -> Listing:
        """
        Append image URLs to a listing.

        Raises:
            ValidationError: If the listing would exceed the image limit
        """
        listing = await self.get_listing(listing_id, include_hidden=True)
        BusinessRuleValidator.validate_image_upload_limits(
            len(listing.images), len(urls), settings.max_images_per_listing
        )
        images = listing.images + [url for url in urls if url not in listing.images]
        updated = await self.listing_repo.set_images(listing_id, images)
        if not updated:
            raise ListingNotFoundError(listing_id)
        return updated

    async def remove_image(self, listing_id: str, url: str) -> Listing:
        """
        Remove an image URL from a listing.

        Raises:
            ValidationError: If the URL is not attached to the listing
        """
        listing = await self.get_listing(listing_id, include_hidden=True)
        if url not in listing.images:
            raise ValidationError("Image is not attached to this listing")
        updated = await self.listing_repo.set_images(listing_id, [i for i in listing.images if i != url])
        if not updated:
            raise ListingNotFoundError(listing_id)
        return updated

    @staticmethod
    def build_page(listings: List[Listing], total: int, page: int, page_size: int) -> Dict[str, Any]:
        """Pagination envelope for ListingListResponse."""
        total_pages = math.ceil(total / page_size) if total > 0 else 0
        return {
            "listings": [listing.to_dict() for listing in listings],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_previous": page > 1,
        }
