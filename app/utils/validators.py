"""
Validation utilities for the Marketplace Storefront API.
Parses and validates admin form input and catalog search parameters.
"""

import json
import re
from typing import Any, Dict, List, Optional, Tuple
from decimal import Decimal, InvalidOperation

from app.utils.exceptions import ValidationError


class ValidationUtils:
    """
    Utility class for common validation operations.
    The admin form posts everything as text; these helpers turn it into typed values.
    """

    PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{1,14}$')
    PRICE_RANGE_PATTERN = re.compile(r'^\s*(\d+)\s*(?:-\s*(\d+)|(\+))\s*$')

    @staticmethod
    def validate_required_fields(data: Dict[str, Any], required: List[str]) -> None:
        """
        Check that every required field has a non-blank value.

        Args:
            data: Submitted field values
            required: Names of fields that must be present

        Raises:
            ValidationError: Listing every missing field
        """
        missing = [
            name for name in required
            if data.get(name) is None or (isinstance(data.get(name), str) and not data[name].strip())
        ]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                field_errors=[{"field": name, "message": f"{name} is required"} for name in missing]
            )

    @staticmethod
    def validate_price(value: Any, field_name: str = "price") -> Decimal:
        """
        Parse a price entered as text.

        Args:
            value: Raw price value, e.g. "2800000" or "2,800,000"
            field_name: Name of the field for error messages

        Returns:
            Positive Decimal price

        Raises:
            ValidationError: If the value is not a positive number
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} is required")

        raw = str(value).strip().replace(",", "")
        try:
            price = Decimal(raw)
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError("Price must be a valid number")

        if not price.is_finite():
            raise ValidationError("Price must be a valid number")
        if price <= 0:
            raise ValidationError("Price must be greater than 0")
        if price > Decimal("999999999999.99"):
            raise ValidationError("Price exceeds maximum allowed value")
        return price

    @staticmethod
    def parse_comma_list(value: Optional[str]) -> List[str]:
        """
        Split a comma-separated field into trimmed, non-empty, unique items.
        Order of first appearance is kept.
        """
        if not value:
            return []
        items: List[str] = []
        for part in value.split(","):
            item = part.strip()
            if item and item not in items:
                items.append(item)
        return items

    @staticmethod
    def join_comma_list(items: Optional[List[str]]) -> str:
        """Inverse of parse_comma_list for prefilling edit forms."""
        return ", ".join(items or [])

    @staticmethod
    def parse_specifications(value: Optional[str]) -> Dict[str, Any]:
        """
        Parse the structured specifications field.

        Args:
            value: JSON object text, e.g. '{"Year": "2019", "Mileage": "45,000 km"}'

        Returns:
            Dictionary of specifications (empty when the field is blank)

        Raises:
            ValidationError: If the text is not a JSON object
        """
        if value is None or not value.strip():
            return {}
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValidationError(
                "Specifications must be valid JSON object",
                field_errors=[{"field": "specifications", "message": f"Invalid JSON: {e.msg}"}]
            )
        if not isinstance(parsed, dict):
            raise ValidationError("Specifications must be valid JSON object")
        return {str(k).strip(): v for k, v in parsed.items() if str(k).strip()}

    @staticmethod
    def dump_specifications(specifications: Optional[Dict[str, Any]]) -> str:
        """Render specifications back to form text."""
        if not specifications:
            return ""
        return json.dumps(specifications, ensure_ascii=False)

    @staticmethod
    def parse_checkbox(value: Any) -> bool:
        """HTML checkboxes send "on"; JSON clients send booleans."""
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().lower() in ("on", "true", "1", "yes")

    @staticmethod
    def validate_phone_number(phone: Any, field_name: str = "whatsapp_number") -> str:
        """
        Validate phone number format.

        Args:
            phone: Phone number to validate
            field_name: Name of the field for error messages

        Returns:
            Phone number with separators removed

        Raises:
            ValidationError: If phone number is invalid
        """
        if not phone:
            raise ValidationError(f"{field_name} is required")

        phone_str = str(phone).strip().replace(' ', '').replace('-', '').replace('(', '').replace(')', '')

        if not ValidationUtils.PHONE_PATTERN.match(phone_str):
            raise ValidationError(f"Invalid phone number format for {field_name}")

        return phone_str

    @staticmethod
    def parse_price_range(value: Optional[str]) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        """
        Parse a search preset such as "500000-1000000" or "5000000+".

        Returns:
            Tuple of (min_price, max_price); max_price is None for open-ended presets

        Raises:
            ValidationError: If the preset is malformed
        """
        if not value:
            return None, None
        match = ValidationUtils.PRICE_RANGE_PATTERN.match(value)
        if not match:
            raise ValidationError(f"Invalid price range: {value}")
        low, high, open_ended = match.groups()
        min_price = Decimal(low)
        max_price = None if open_ended else Decimal(high)
        return min_price, max_price


class BusinessRuleValidator:
    """
    Validator for business rules.
    Handles storefront-specific validation requirements.
    """

    @staticmethod
    def validate_image_upload_limits(
        current_image_count: int,
        new_image_count: int,
        max_images_per_listing: int = 10
    ) -> None:
        """
        Validate image upload limits.

        Raises:
            ValidationError: If the upload would push the listing over the limit
        """
        if current_image_count + new_image_count > max_images_per_listing:
            raise ValidationError(f"Maximum {max_images_per_listing} images allowed")

    @staticmethod
    def validate_price_range(
        min_price: Optional[Decimal],
        max_price: Optional[Decimal]
    ) -> None:
        """
        Validate price range parameters.

        Raises:
            ValidationError: If price range is invalid
        """
        if min_price is not None and min_price < 0:
            raise ValidationError("Minimum price cannot be negative")
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError("Minimum price cannot be greater than maximum price")
