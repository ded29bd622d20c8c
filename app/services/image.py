"""
Image service for listing image uploads to the backend storage bucket.
Provides validation, upload and removal of stored images.
"""

from typing import List, Dict, Any
from fastapi import UploadFile
from supabase import AsyncClient

from app.config import get_settings
from app.utils.file_utils import (
    FileValidator,
    generate_object_path,
    get_public_url,
    object_path_from_url
)
from app.utils.validators import BusinessRuleValidator
from app.utils.exceptions import ValidationError, APIException, BackendError
import logging

settings = get_settings()
logger = logging.getLogger(__name__)


class ImageService:
    """Service for uploading listing images to object storage."""

    def __init__(self, client: AsyncClient):
        self.client = client
        self.bucket = settings.supabase_storage_bucket
        self.max_images = settings.max_images_per_listing

    def _storage(self):
        return self.client.storage.from_(self.bucket)

    async def upload_image(self, file: UploadFile) -> Dict[str, Any]:
        """
        Validate and upload one image.

        Args:
            file: Uploaded file object

        Returns:
            Dictionary matching the StoredImage schema

        Raises:
            ValidationError: If the file is not an acceptable image
            BackendError: If the storage upload fails
        """
        await file.seek(0)
        content = await file.read()
        mime_type, width, height = FileValidator.validate_upload(file.content_type, content)

        path = generate_object_path(mime_type)
        try:
            await self._storage().upload(path, content, {"content-type": mime_type})
        except Exception as e:
            logger.error(f"Storage upload failed for {file.filename}: {e}")
            raise BackendError(f"Failed to store image {file.filename}")

        url = get_public_url(path, self.bucket)
        logger.info(f"Uploaded image {file.filename} to {self.bucket}/{path}")
        return {
            "url": url,
            "path": path,
            "filename": file.filename or path,
            "content_type": mime_type,
            "size": len(content),
            "width": width,
            "height": height,
        }

    async def upload_images(self, files: List[UploadFile], existing_count: int = 0) -> Dict[str, Any]:
        """
        Upload several images for one listing.

        The whole batch is refused when it would push the listing past the
        image limit; otherwise files that fail validation are reported and
        the rest are uploaded.

        Args:
            files: Uploaded files
            existing_count: Images the listing already has

        Returns:
            Dictionary matching MultipleImageUploadResponse

        Raises:
            ValidationError: If no files are given, the limit would be exceeded,
                or every file fails
        """
        if not files:
            raise ValidationError("At least one image file is required")
        if existing_count < 0:
            raise ValidationError("existing_count cannot be negative")

        BusinessRuleValidator.validate_image_upload_limits(existing_count, len(files), self.max_images)

        uploaded_images = []
        errors = []

        for file in files:
            try:
                uploaded_images.append(await self.upload_image(file))
            except APIException as e:
                errors.append(f"Failed to upload {file.filename}: {e.detail}")

        if errors and not uploaded_images:
            raise ValidationError(f"All uploads failed: {'; '.join(errors)}")

        count = len(uploaded_images)
        return {
            "success": not errors,
            "message": f"{count} image{'s' if count != 1 else ''} uploaded successfully",
            "images": uploaded_images,
            "uploaded_count": count,
            "failed_count": len(errors),
            "errors": errors,
        }

    async def delete_image(self, url: str) -> bool:
        """
        Remove a stored image by its public URL.

        Returns:
            True if an object in our bucket was removed, False for external URLs
        """
        path = object_path_from_url(url, self.bucket)
        if path is None:
            logger.debug(f"Not removing external image URL: {url}")
            return False

        try:
            await self._storage().remove([path])
        except Exception as e:
            logger.warning(f"Failed to remove {self.bucket}/{path}: {e}")
            return False

        logger.info(f"Removed image {self.bucket}/{path}")
        return True
