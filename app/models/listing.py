"""
Listing read model for vehicle and property adverts.
Rows are owned by the managed backend; this class wraps them with presentation helpers.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import enum
import re


class ListingType(str, enum.Enum):
    """What is being sold."""
    CAR = "car"
    PROPERTY = "property"


class ListingStatus(str, enum.Enum):
    """Lifecycle status of a listing."""
    ACTIVE = "active"
    SOLD = "sold"
    INACTIVE = "inactive"


WHATSAPP_MESSAGE = (
    "Hi! I'm interested in the {title} listed for {price}. "
    "Could you provide more information?"
)


def format_price(price: Decimal, currency: str = "KSH") -> str:
    """
    Format a price the way the storefront shows it, e.g. ``KSH 3,200,000``.

    Whole amounts are shown without decimals; fractional amounts keep up to two.
    """
    amount = f"{Decimal(price):,.2f}"
    if "." in amount:
        amount = amount.rstrip("0").rstrip(".")
    # KES is displayed with the local KSH symbol
    symbol = "KSH" if currency in ("KES", "KSH") else currency
    return f"{symbol} {amount}"


def build_whatsapp_url(number: str, title: str, formatted_price: str) -> str:
    """Build a wa.me deep link with a prefilled enquiry message."""
    digits = re.sub(r"\D", "", number or "")
    message = WHATSAPP_MESSAGE.format(title=title, price=formatted_price)
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    # Backend timestamps look like 2024-05-01T10:00:00.123456+00:00 or end in Z
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class Listing:
    """
    A vehicle or property for sale.
    Built from a ``listings`` row returned by the managed backend.
    """

    def __init__(
        self,
        id: str,
        title: str,
        price: Decimal,
        type: ListingType,
        location: str,
        description: Optional[str] = None,
        currency: str = "KSH",
        images: Optional[List[str]] = None,
        features: Optional[List[str]] = None,
        specifications: Optional[Dict[str, Any]] = None,
        whatsapp_number: str = "",
        featured: bool = False,
        status: ListingStatus = ListingStatus.ACTIVE,
        user_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.title = title
        self.price = price
        self.type = type
        self.location = location
        self.description = description
        self.currency = currency
        self.images = images or []
        self.features = features or []
        self.specifications = specifications or {}
        self.whatsapp_number = whatsapp_number
        self.featured = featured
        self.status = status
        self.user_id = user_id
        self.created_at = created_at
        self.updated_at = updated_at

    def __repr__(self) -> str:
        """String representation of the listing."""
        return f"<Listing(id={self.id}, type={self.type.value}, title={self.title})>"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Listing":
        """
        Create a Listing from a backend row.

        Args:
            row: Dictionary as returned by the listings table

        Returns:
            Listing instance

        Raises:
            ValueError: If the row is missing required columns or has bad values
        """
        try:
            price = Decimal(str(row["price"]))
        except (KeyError, InvalidOperation, TypeError) as e:
            raise ValueError(f"Listing row has invalid price: {row.get('price')!r}") from e

        return cls(
            id=str(row["id"]),
            title=row["title"],
            price=price,
            type=ListingType(row["type"]),
            location=row.get("location") or "",
            description=row.get("description"),
            currency=row.get("currency") or "KSH",
            images=list(row.get("images") or []),
            features=list(row.get("features") or []),
            specifications=dict(row.get("specifications") or {}),
            whatsapp_number=row.get("whatsapp_number") or "",
            featured=bool(row.get("featured", False)),
            status=ListingStatus(row.get("status") or ListingStatus.ACTIVE.value),
            user_id=row.get("user_id"),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )

    @property
    def is_active(self) -> bool:
        return self.status == ListingStatus.ACTIVE

    @property
    def is_car(self) -> bool:
        return self.type == ListingType.CAR

    @property
    def formatted_price(self) -> str:
        return format_price(self.price, self.currency)

    @property
    def whatsapp_url(self) -> Optional[str]:
        """Contact link for the listing, or None when no number is set."""
        if not self.whatsapp_number:
            return None
        return build_whatsapp_url(self.whatsapp_number, self.title, self.formatted_price)

    def to_dict(self) -> dict:
        """
        Convert listing to dictionary.

        Returns:
            Dictionary representation including display helpers
        """
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "price": float(self.price),
            "currency": self.currency,
            "formatted_price": self.formatted_price,
            "location": self.location,
            "images": list(self.images),
            "features": list(self.features),
            "specifications": dict(self.specifications),
            "whatsapp_number": self.whatsapp_number,
            "whatsapp_url": self.whatsapp_url,
            "featured": self.featured,
            "status": self.status.value,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
