"""
File upload utilities for listing images.
Validates uploads with Pillow and derives storage object paths and public URLs.
"""

import io
import uuid
from typing import Dict, List, Optional, Tuple
from PIL import Image, UnidentifiedImageError

from app.config import get_settings
from app.utils.exceptions import ValidationError

settings = get_settings()


class FileValidator:
    """Utility class for image upload validation."""

    # Supported MIME types, the Pillow format each must decode as, and the stored extension
    SUPPORTED_FORMATS: Dict[str, Tuple[str, str]] = {
        'image/jpeg': ('jpeg', '.jpg'),
        'image/png': ('png', '.png'),
        'image/gif': ('gif', '.gif'),
        'image/webp': ('webp', '.webp'),
    }

    @classmethod
    def allowed_types(cls) -> List[str]:
        return [t for t in settings.allowed_image_types if t in cls.SUPPORTED_FORMATS]

    @classmethod
    def validate_mime_type(cls, mime_type: Optional[str]) -> str:
        """
        Validate MIME type.

        Raises:
            ValidationError: If MIME type is not an allowed image type
        """
        if not mime_type:
            raise ValidationError("MIME type is required")

        mime_type = mime_type.lower()
        if mime_type == 'image/jpg':
            mime_type = 'image/jpeg'

        if mime_type not in cls.allowed_types():
            raise ValidationError(
                f"File type '{mime_type}' not supported. "
                f"Supported types: {', '.join(cls.allowed_types())}"
            )
        return mime_type

    @classmethod
    def validate_file_size(cls, file_size: int, max_size: Optional[int] = None) -> int:
        """
        Validate file size.

        Raises:
            ValidationError: If the file is empty or exceeds the limit
        """
        if file_size <= 0:
            raise ValidationError("File is empty")

        max_allowed = max_size or settings.max_image_size
        if file_size > max_allowed:
            max_mb = max_allowed / (1024 * 1024)
            actual_mb = file_size / (1024 * 1024)
            raise ValidationError(
                f"File size ({actual_mb:.1f}MB) exceeds maximum allowed size ({max_mb:.1f}MB)"
            )
        return file_size

    @classmethod
    def validate_image_content(cls, content: bytes, mime_type: str) -> Tuple[int, int]:
        """
        Check that the bytes decode as an image of the declared type.

        Returns:
            Tuple of (width, height)

        Raises:
            ValidationError: If the content is not an image or its format differs
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                img.verify()
                pil_format = (img.format or "").lower()
                width, height = img.size
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(f"Invalid image file: {str(e)}")

        expected_format = cls.SUPPORTED_FORMATS[mime_type][0]
        if pil_format != expected_format:
            raise ValidationError(
                f"Image format '{pil_format}' doesn't match MIME type '{mime_type}'"
            )
        return width, height

    @classmethod
    def validate_upload(cls, content_type: Optional[str], content: bytes) -> Tuple[str, int, int]:
        """
        Full validation of one upload.

        Returns:
            Tuple of (mime_type, width, height)
        """
        mime_type = cls.validate_mime_type(content_type)
        cls.validate_file_size(len(content))
        width, height = cls.validate_image_content(content, mime_type)
        return mime_type, width, height


def generate_object_path(mime_type: str, folder: str = "listings") -> str:
    """Unique object path inside the bucket, e.g. ``listings/<hex>.jpg``."""
    extension = FileValidator.SUPPORTED_FORMATS[mime_type][1]
    return f"{folder}/{uuid.uuid4().hex}{extension}"


def public_url_prefix(bucket: Optional[str] = None) -> str:
    bucket = bucket or settings.supabase_storage_bucket
    return f"{settings.supabase_url}/storage/v1/object/public/{bucket}/"


def get_public_url(path: str, bucket: Optional[str] = None) -> str:
    """Public URL of an object in a public bucket."""
    return public_url_prefix(bucket) + path.lstrip("/")


def object_path_from_url(url: str, bucket: Optional[str] = None) -> Optional[str]:
    """Object path for a URL in our bucket, or None for external URLs."""
    prefix = public_url_prefix(bucket)
    if not url.startswith(prefix):
        return None
    return url[len(prefix):].split("?", 1)[0] or None
