"""
Pydantic schemas for listing image uploads.
Images live in object storage; a listing only keeps their public URLs.
"""

from pydantic import BaseModel, Field
from typing import Optional, List


class StoredImage(BaseModel):
    """An image written to the storage bucket."""

    url: str = Field(
        ...,
        description="Public URL stored in the listing's images list",
        examples=["https://project.supabase.co/storage/v1/object/public/listing-images/listings/0f3c.jpg"]
    )

    path: str = Field(
        ...,
        description="Object path inside the bucket",
        examples=["listings/0f3c2a9e8d2b4c5f9a1b2c3d4e5f6a7b.jpg"]
    )

    filename: str = Field(..., description="Original filename of the upload", examples=["front.jpg"])
    content_type: str = Field(..., examples=["image/jpeg"])
    size: int = Field(..., gt=0, description="File size in bytes")
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)


class ImageUploadResponse(BaseModel):
    """Schema for image upload response."""

    success: bool = Field(..., description="Whether the upload was successful")
    message: str = Field(..., examples=["Image uploaded successfully"])
    image: StoredImage


class MultipleImageUploadResponse(BaseModel):
    """Schema for multiple image upload response."""

    success: bool = Field(
        ...,
        description="Whether all uploads were successful",
        examples=[True]
    )

    message: str = Field(
        ...,
        description="Upload result message",
        examples=["3 images uploaded successfully"]
    )

    images: List[StoredImage] = Field(
        ...,
        description="Uploaded images, in upload order"
    )

    uploaded_count: int = Field(..., examples=[3])
    failed_count: int = Field(0, examples=[0])

    errors: List[str] = Field(
        default_factory=list,
        description="Error messages for rejected files"
    )

    listing_images: Optional[List[str]] = Field(
        None,
        description="The listing's full image list after attaching, when uploading to a listing"
    )
