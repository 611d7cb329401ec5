"""
Image upload route

Listing images go to object storage before the listing is saved; the
returned imageUrl/imagePath are then sent with the create or update call.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from secondhand.api.deps import get_blob_store, get_current_user
from secondhand.core.error_handler import collaborator_boundary
from secondhand.core.exceptions import UnexpectedError, ValidationError
from secondhand.schemas.user import ImageUploadResponse
from secondhand.services.identity import AuthenticatedUser
from secondhand.services.storage import BlobStore

logger = logging.getLogger(__name__)
router = APIRouter(tags=["uploads"])


@router.post("/upload-image", response_model=ImageUploadResponse)
async def upload_image(
    file: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(get_current_user),
    storage: BlobStore = Depends(get_blob_store),
):
    """Upload a JPEG, PNG or WebP image of at most 5MB"""
    if file is None:
        raise ValidationError("No file provided")

    # Read one byte past the limit so oversized files are detected without buffering them whole
    content = await file.read(storage.max_image_size + 1)
    storage.check_image(content, file.content_type or "")

    with collaborator_boundary("during image upload"):
        result = await storage.upload_listing_image(
            content=content,
            filename=file.filename or "",
            content_type=file.content_type,
            owner_id=user.id,
        )
    if not result.success:
        raise UnexpectedError(result.error or "Failed to upload image")

    return ImageUploadResponse(imageUrl=result.url, imagePath=result.key)
