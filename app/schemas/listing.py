"""
Pydantic schemas for listing requests and responses.
Handles listing CRUD operations, catalog search filters, and validation.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from app.config import settings
from app.models.listing import ListingType, ListingStatus
from app.utils.exceptions import ValidationError
from app.utils.validators import ValidationUtils


def clean_whatsapp_number(v: Optional[str]) -> str:
    """Normalize a contact number; blank falls back to the storefront default."""
    if v is None or not v.strip():
        return settings.default_whatsapp_number
    try:
        return ValidationUtils.validate_phone_number(v)
    except ValidationError as e:
        raise ValueError(e.detail)


class ListingBase(BaseModel):
    """Base listing schema with common fields."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Listing title",
        examples=["Toyota Camry 2020"]
    )

    description: Optional[str] = Field(
        None,
        max_length=5000,
        description="Detailed description",
        examples=["Excellent condition Toyota Camry 2020 with low mileage."]
    )

    type: ListingType = Field(
        ...,
        description="Listing type - car or property",
        examples=["car"]
    )

    price: Decimal = Field(
        ...,
        gt=0,
        description="Price in the listing currency",
        examples=[3200000]
    )

    currency: str = Field(
        "KSH",
        min_length=3,
        max_length=3,
        description="Currency code"
    )

    location: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Location",
        examples=["Nairobi, Kenya"]
    )

    images: List[str] = Field(default_factory=list, description="Image URLs")
    features: List[str] = Field(default_factory=list, description="Feature tags")
    specifications: Dict[str, Any] = Field(
        default_factory=dict,
        description="Structured specifications",
        examples=[{"Year": "2020", "Mileage": "45,000 km"}]
    )

    whatsapp_number: str = Field(
        "+254712345678",
        max_length=32,
        description="WhatsApp contact number"
    )

    featured: bool = Field(False, description="Show in the featured section")

    @field_validator('title', 'location')
    @classmethod
    def strip_required_text(cls, v):
        """Validate and clean required text fields."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

    @field_validator('whatsapp_number')
    @classmethod
    def validate_whatsapp_number(cls, v):
        return clean_whatsapp_number(v)

    @field_validator('description')
    @classmethod
    def strip_description(cls, v):
        if v is None:
            return v
        return v.strip() or None

    @field_validator('features', 'images')
    @classmethod
    def clean_string_list(cls, v):
        """Trim items, drop blanks and duplicates."""
        cleaned: List[str] = []
        for item in v:
            item = item.strip()
            if item and item not in cleaned:
                cleaned.append(item)
        return cleaned


class ListingCreate(ListingBase):
    """Schema for creating a new listing."""

    status: ListingStatus = Field(ListingStatus.ACTIVE, description="Initial status")

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Toyota Camry 2020",
                "description": "Excellent condition Toyota Camry 2020 with low mileage.",
                "type": "car",
                "price": 3200000,
                "currency": "KSH",
                "location": "Nairobi, Kenya",
                "images": [],
                "features": ["Leather Seats", "Sunroof"],
                "specifications": {"Year": "2020", "Transmission": "Automatic"},
                "whatsapp_number": "+254712345678",
                "featured": True
            }
        }
    }


class ListingUpdate(BaseModel):
    """Schema for updating an existing listing. Only provided fields change."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    type: Optional[ListingType] = None
    price: Optional[Decimal] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    images: Optional[List[str]] = None
    features: Optional[List[str]] = None
    specifications: Optional[Dict[str, Any]] = None
    whatsapp_number: Optional[str] = Field(None, max_length=32)
    featured: Optional[bool] = None
    status: Optional[ListingStatus] = None

    @field_validator('title', 'location')
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return v
        if not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

    @field_validator('whatsapp_number')
    @classmethod
    def validate_whatsapp_number(cls, v):
        if v is None:
            return v
        return clean_whatsapp_number(v)


class ListingStatusUpdate(BaseModel):
    """Schema for changing listing status."""

    status: ListingStatus = Field(..., description="New status")


class ListingResponse(BaseModel):
    """Listing as shown in the catalog and the back office."""

    id: str
    title: str
    description: Optional[str] = None
    type: ListingType
    price: float
    currency: str
    formatted_price: str = Field(..., description="Display price, e.g. KSH 3,200,000")
    location: str
    images: List[str] = []
    features: List[str] = []
    specifications: Dict[str, Any] = {}
    whatsapp_number: str = ""
    whatsapp_url: Optional[str] = Field(None, description="wa.me link with a prefilled enquiry")
    featured: bool = False
    status: ListingStatus
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ListingListResponse(BaseModel):
    """Paginated listing results."""

    listings: List[ListingResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class CatalogSectionsResponse(BaseModel):
    """Catalog grid split into featured and regular listings."""

    featured: List[ListingResponse]
    regular: List[ListingResponse]
    featured_total: int = Field(0, description="Featured listings matching the filters")
    regular_total: int = Field(0, description="Regular listings matching the filters")
    total: int


class ListingSearchFilters(BaseModel):
    """Catalog search filters and pagination parameters."""

    query: Optional[str] = Field(None, max_length=255, description="Free text matched against title and description")
    type: Optional[ListingType] = Field(None, description="car or property; None means all")
    location: Optional[str] = Field(None, max_length=255, description="Case-insensitive location substring")
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    featured: Optional[bool] = None
    status: Optional[ListingStatus] = Field(ListingStatus.ACTIVE, description="None means every status (admin only)")
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)

    @field_validator('query', 'location')
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return v
        return v.strip() or None

    @model_validator(mode='after')
    def validate_price_bounds(self):
        """Minimum price cannot exceed maximum price."""
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("Minimum price cannot be greater than maximum price")
        return self


class SelectOption(BaseModel):
    """A value/label pair for a select input."""

    value: str
    label: str


class SearchOptionsResponse(BaseModel):
    """Preset values offered by the search form."""

    locations: List[SelectOption]
    price_ranges: Dict[str, List[SelectOption]]
    types: List[SelectOption]


class ListingFormData(BaseModel):
    """Listing rendered back into admin form field strings."""

    type: ListingType
    title: str
    price: str
    location: str
    images: str
    description: str
    features: str
    specifications: str
    whatsapp_number: str
    featured: bool
    status: ListingStatus


class DashboardStats(BaseModel):
    """Counts shown on the admin dashboard."""

    total_listings: int
    cars: int
    properties: int
    featured: int
    by_status: Dict[str, int]
