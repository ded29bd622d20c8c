"""
Image management API endpoints.
Uploads listing images to the storage bucket and attaches or detaches them from listings.
"""

from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, UploadFile, File, Form, Query, status

from app.services.image import ImageService
from app.services.listing import ListingService
from app.schemas.image import MultipleImageUploadResponse
from app.schemas.listing import ListingResponse
from app.utils.dependencies import (
    get_current_admin_user,
    get_image_service,
    get_listing_service
)
from app.schemas.error import get_crud_error_responses

router = APIRouter(
    prefix="/admin",
    tags=["Images"],
    dependencies=[Depends(get_current_admin_user)]
)


@router.post("/images",
            response_model=MultipleImageUploadResponse,
            status_code=status.HTTP_201_CREATED,
            summary="Upload images",
            description=(
                "Upload JPG, PNG, GIF or WebP images up to 5MB each. "
                "existing_count is how many images the listing already has; "
                "the total may not exceed 10."
            ),
            responses=get_crud_error_responses())
async def upload_images(
    files: List[UploadFile] = File(..., description="Image files to upload"),
    existing_count: int = Form(0, ge=0, description="Images already attached to the listing"),
    image_service: ImageService = Depends(get_image_service)
) -> MultipleImageUploadResponse:
    """Upload images and return their public URLs."""
    result = await image_service.upload_images(files, existing_count=existing_count)
    return MultipleImageUploadResponse.model_validate(result)


@router.post("/listings/{listing_id}/images",
            response_model=MultipleImageUploadResponse,
            status_code=status.HTTP_201_CREATED,
            summary="Upload images to a listing",
            description="Upload images and append their URLs to the listing's image list.",
            responses=get_crud_error_responses())
async def upload_listing_images(
    listing_id: UUID,
    files: List[UploadFile] = File(..., description="Image files to upload"),
    image_service: ImageService = Depends(get_image_service),
    listing_service: ListingService = Depends(get_listing_service)
) -> MultipleImageUploadResponse:
    """
    Upload images for a listing.

    Raises:
        ListingNotFoundError: If the listing does not exist
        ValidationError: If the listing would exceed the image limit
    """
    listing = await listing_service.get_listing(str(listing_id), include_hidden=True)
    result = await image_service.upload_images(files, existing_count=len(listing.images))

    updated = await listing_service.add_images(
        str(listing_id), [image["url"] for image in result["images"]]
    )
    result["listing_images"] = updated.images
    return MultipleImageUploadResponse.model_validate(result)


@router.delete("/listings/{listing_id}/images",
              response_model=ListingResponse,
              status_code=status.HTTP_200_OK,
              summary="Remove image from a listing",
              description="Detach an image URL from a listing and delete the stored object when it lives in our bucket.",
              responses=get_crud_error_responses())
async def remove_listing_image(
    listing_id: UUID,
    url: str = Query(..., min_length=1, description="Image URL to remove"),
    image_service: ImageService = Depends(get_image_service),
    listing_service: ListingService = Depends(get_listing_service)
) -> ListingResponse:
    """Remove an image from a listing."""
    listing = await listing_service.remove_image(str(listing_id), url)
    await image_service.delete_image(url)
    return ListingResponse.model_validate(listing.to_dict())
